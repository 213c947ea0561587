## Copyright © 2025, Alex J. Champandard.  Licensed under AGPLv3; see LICENSE! ⚘

import os
from pathlib import Path

from .types import Instruction, Function, Program, Module
from .errors import SuiModuleError, SuiModuleNotFound, SuiCyclicImport, SuiDuplicateFunctionId
from .parser import parse
from .linker import link_imports, check_calls


SOURCE_SUFFIX = '.sui'


def _resolve_sui_paths() -> list[Path]:
    parts = [p for p in os.environ.get("SUI_PATH", "").split(os.pathsep) if p]
    return [Path(os.path.expanduser(os.path.expandvars(p))) for p in parts]


def iter_sui_module_candidates(name: str, base_dir: Path, search_paths=()):
    """Resolution order: the importer's directory first, then explicit search paths, then SUI_PATH."""
    names = [name] if name.endswith(SOURCE_SUFFIX) else [name, name + SOURCE_SUFFIX]
    for root in (base_dir, *search_paths, *_resolve_sui_paths()):
        for n in names:
            yield Path(root) / os.path.expanduser(n)


def read_source(path: Path, *, importer: Instruction | None = None) -> str:
    meta = {'filename': importer.filename, 'line': importer.line} if importer else {}
    try:
        return path.read_text(encoding='utf-8')
    except FileNotFoundError:
        raise SuiModuleNotFound(f"Module file `{path}` not found.", **meta) from None
    except (OSError, UnicodeDecodeError) as exc:
        raise SuiModuleError(f"Module file `{path}` could not be read: {exc}", **meta) from exc


class ModuleResolver:
    """Expand `_` imports into one merged program, loading each file at most once.

    The resolver owns the global function table.  Each module's top-level code is
    emitted exactly once, at the point of its first import; later imports of the same
    file, directly or transitively, contribute nothing.
    """

    def __init__(self, search_paths=()):
        self.search_paths = [Path(p) for p in search_paths]
        self.cache: dict[Path, Module] = {}
        self.in_progress: list[Path] = []
        self.functions: dict[int, Function] = {}

    def locate(self, name: str, base_dir: Path, *, importer: Instruction | None = None) -> Path:
        for candidate in iter_sui_module_candidates(name, base_dir, self.search_paths):
            if candidate.is_file():
                return candidate
        meta = {'filename': importer.filename, 'line': importer.line} if importer else {}
        raise SuiModuleNotFound(f"Module `{name}` not found from `{base_dir}` or the search paths.", **meta)

    def resolve(self, path) -> Program:
        """Load the entry file and everything it imports into one checked Program."""
        path = Path(path)
        return self.resolve_source(read_source(path), filename=str(path), base_dir=path.parent)

    def resolve_source(self, source: str, filename: str | None = None, base_dir=None) -> Program:
        """Same as `resolve` but for in-memory text; imports are found relative to `base_dir`."""
        base_dir = Path(base_dir) if base_dir is not None else Path.cwd()
        canonical = Path(filename).resolve() if filename and Path(filename).is_file() else None
        module = self._load(source, filename, base_dir, canonical)

        program = Program(module.instructions, dict(self.functions), module.labels, filename=filename)
        check_calls(program)
        return program

    def _load(self, source: str, filename: str | None, base_dir: Path, canonical: Path | None) -> Module:
        if canonical is not None:
            self.in_progress.append(canonical)
        try:
            parsed = parse(source, filename=filename)
            for function in parsed.functions.values():
                self._register(function)

            spliced = {}
            for i, instr in enumerate(parsed.instructions):
                if instr.opcode == '_':
                    spliced[i] = self._import(instr, base_dir)
            instructions, index_map = link_imports(parsed.instructions, spliced)
        finally:
            if canonical is not None:
                self.in_progress.pop()

        labels = {label: index_map[index] for label, index in parsed.labels.items()}
        module = Module(canonical or Path(filename or '<input>'), instructions, parsed.functions, labels)
        if canonical is not None:
            self.cache[canonical] = module
        return module

    def _import(self, instr: Instruction, base_dir: Path) -> tuple:
        path = self.locate(str(instr.operands[0]), base_dir, importer=instr)
        canonical = path.resolve()
        if canonical in self.cache:
            return ()
        if canonical in self.in_progress:
            chain = self.in_progress[self.in_progress.index(canonical):] + [canonical]
            raise SuiCyclicImport(f"Cyclic import: {' -> '.join(p.name for p in chain)}.",
                                  filename=instr.filename, line=instr.line, chain=chain)

        source = read_source(path, importer=instr)
        return self._load(source, str(path), canonical.parent, canonical).instructions

    def _register(self, function: Function) -> None:
        if (existing := self.functions.get(function.id)) is not None:
            raise SuiDuplicateFunctionId(
                f"Function `{function.id}` in `{function.filename or '<input>'}` collides with the definition "
                f"in `{existing.filename or '<input>'}` line {existing.line}.",
                filename=function.filename, line=function.line)
        self.functions[function.id] = function
