## suilang — Copyright © 2025, Alex J. Champandard.  Licensed under AGPLv3; see LICENSE! ⚘

import pytest

from suilang.runtime import Runtime
from suilang.loader import ModuleResolver
from suilang.errors import (SuiModuleError, SuiModuleNotFound, SuiCyclicImport, SuiDuplicateFunctionId,
                            SuiUnresolvedFunction)


def _write(tmp_path, name, content):
    p = tmp_path / f"{name}.sui"
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(content, encoding="utf-8")
    return p


def test_import_runs_top_level_code_in_place(tmp_path):
    _write(tmp_path, "greet", '. "hello"\n')
    main = _write(tmp_path, "main", '. "before"\n_ "greet"\n. "after"\n')
    assert Runtime().run(main) == ["before", "hello", "after"]


def test_module_imported_twice_runs_once(tmp_path):
    _write(tmp_path, "b", '. "b"\n')
    _write(tmp_path, "a", '_ "b"\n. "a"\n')
    main = _write(tmp_path, "main", '_ "a"\n_ "b"\n_ "a.sui"\n. "main"\n')
    assert Runtime().run(main) == ["b", "a", "main"]


def test_cyclic_import_names_the_chain(tmp_path):
    _write(tmp_path, "b", '_ "a"\n')
    a = _write(tmp_path, "a", '_ "b"\n. "unreachable"\n')
    with pytest.raises(SuiCyclicImport) as e:
        Runtime().load(a)
    assert "a.sui -> b.sui -> a.sui" in str(e.value)
    assert [p.name for p in e.value.chain] == ["a.sui", "b.sui", "a.sui"]
    assert isinstance(e.value, ImportError)


def test_self_import_is_cyclic(tmp_path):
    me = _write(tmp_path, "me", '_ "me"\n')
    with pytest.raises(SuiCyclicImport):
        Runtime().load(me)


def test_missing_module_reports_importing_line(tmp_path):
    main = _write(tmp_path, "main", '= v0 1\n_ "nope"\n')
    with pytest.raises(SuiModuleNotFound) as e:
        Runtime().load(main)
    assert e.value.line == 2
    assert e.value.filename == str(main)


def test_missing_entry_file(tmp_path):
    with pytest.raises(SuiModuleError):
        Runtime().load(tmp_path / "absent.sui")


def test_functions_from_imported_modules_are_callable(tmp_path):
    _write(tmp_path, "lib", "# 5 1 {\n* v0 a0 a0\n^ v0\n}\n")
    main = _write(tmp_path, "main", '_ "lib"\n$ v0 5 7\n. v0\n')
    assert Runtime().run(main) == ["49"]


def test_import_relative_to_importing_file(tmp_path):
    _write(tmp_path / "pkg", "inner", '. "inner"\n')
    _write(tmp_path / "pkg", "outer", '_ "inner"\n. "outer"\n')
    main = _write(tmp_path, "main", '_ "pkg/outer"\n')
    assert Runtime().run(main) == ["inner", "outer"]


def test_search_path_from_environment(tmp_path, monkeypatch):
    libdir = tmp_path / "libs"
    _write(libdir, "shared", '. "shared"\n')
    main = _write(tmp_path / "app", "main", '_ "shared"\n')
    monkeypatch.setenv("SUI_PATH", str(libdir))
    assert Runtime().run(main) == ["shared"]


def test_search_path_from_runtime_config(tmp_path, monkeypatch):
    monkeypatch.delenv("SUI_PATH", raising=False)
    libdir = tmp_path / "libs"
    _write(libdir, "shared", '. "shared"\n')
    main = _write(tmp_path / "app", "main", '_ "shared"\n')
    assert Runtime(search_paths=[libdir]).run(main) == ["shared"]


def test_duplicate_function_id_across_modules(tmp_path):
    _write(tmp_path, "lib", "# 1 0 {\n}\n")
    main = _write(tmp_path, "main", '_ "lib"\n# 1 0 {\n}\n')
    with pytest.raises(SuiDuplicateFunctionId) as e:
        Runtime().load(main)
    assert "lib.sui" in str(e.value)


def test_call_to_function_defined_nowhere(tmp_path):
    main = _write(tmp_path, "main", '$ v0 8\n')
    with pytest.raises(SuiUnresolvedFunction):
        Runtime().load(main)


def test_jump_targets_survive_splicing(tmp_path):
    _write(tmp_path, "counter", "= v0 0\n: 1\n+ v0 v0 1\n< v1 v0 3\n? v1 1\n. v0\n")
    main = _write(tmp_path, "main", '. "start"\n_ "counter"\n= v0 10\n: 1\n- v0 v0 5\n> v1 v0 0\n? v1 1\n. v0\n')
    assert Runtime().run(main) == ["start", "3", "0"]


def test_resolver_caches_modules_by_canonical_path(tmp_path):
    lib = _write(tmp_path, "lib", '. "lib"\n')
    main = _write(tmp_path, "main", '_ "lib"\n_ "./lib.sui"\n')
    resolver = ModuleResolver()
    program = resolver.resolve(main)
    assert lib.resolve() in resolver.cache
    assert main.resolve() in resolver.cache
    assert [i.opcode for i in program.instructions] == ['_', '.', '_']


def test_in_memory_source_imports_from_base_dir(tmp_path):
    _write(tmp_path, "lib", '. "lib"\n')
    program = Runtime().load('_ "lib"\n. "main"\n', base_dir=tmp_path)
    assert Runtime().run(program) == ["lib", "main"]
