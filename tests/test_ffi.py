## suilang — Copyright © 2025, Alex J. Champandard.  Licensed under AGPLv3; see LICENSE! ⚘

import random

import pytest

from suilang.types import Array
from suilang.ffi import Dispatcher, load_builtins, get_signature, get_ffi_name
from suilang.errors import SuiFFIError, SuiUnknownFFIFunction, SuiFFIArgumentError, SuiRuntimeError, SuiIntegerOverflow


@pytest.fixture
def ffi():
    return load_builtins(random.Random(1234))


def test_namespaced_names_and_bare_aliases(ffi):
    assert ffi.invoke("math.sqrt", [16]) == 4.0
    assert ffi.invoke("sqrt", [16]) == 4.0
    assert "math.sqrt" in ffi.list_functions()
    assert "abs" in ffi.list_functions()


def test_python_names_map_to_namespaces():
    assert get_ffi_name("ffi_math_log10") == "math.log10"
    assert get_ffi_name("ffi_random_randint") == "random.randint"
    assert get_ffi_name("ffi_len") == "len"


@pytest.mark.parametrize("name, args, expected", [
    ("math.pow", [2, 10], 1024.0),
    ("math.floor", [2.7], 2),
    ("math.ceil", [2.1], 3),
    ("abs", [-42], 42),
    ("abs", [-1.5], 1.5),
    ("max", [1, 5, 3], 5),
    ("min", [4, 2.5], 2.5),
    ("len", ["hello"], 5),
    ("int", ["456"], 456),
    ("int", [" 7.9 "], 7),
    ("int", [-3.7], -3),
    ("float", ["3.14"], 3.14),
    ("str", [12], "12"),
    ("str", [2.0], "2.0"),
    ("concat", ["a", 1, 2.5], "a12.5"),
    ("round", [3.14159, 2], 3.14),
])
def test_builtin_results(ffi, name, args, expected):
    assert ffi.invoke(name, args) == expected


def test_round_is_half_away_from_zero(ffi):
    assert ffi.invoke("round", [2.5]) == 3
    assert ffi.invoke("round", [-2.5]) == -3
    assert ffi.invoke("round", [0.4]) == 0
    assert type(ffi.invoke("round", [2.5])) is int


def test_integer_results_must_fit_64_bits(ffi):
    assert ffi.invoke("math.floor", [1e18]) == 10**18
    with pytest.raises(SuiIntegerOverflow):
        ffi.invoke("math.floor", [1e300])
    with pytest.raises(SuiIntegerOverflow):
        ffi.invoke("int", ["1e300"])
    with pytest.raises(SuiIntegerOverflow):
        ffi.invoke("abs", [-2**63])
    with pytest.raises(SuiFFIArgumentError):
        ffi.invoke("int", [float("inf")])


def test_len_of_array(ffi):
    assert ffi.invoke("len", [Array(4)]) == 4


def test_randint_draws_from_injected_source():
    expected = random.Random(99).randint(1, 6)
    assert load_builtins(random.Random(99)).invoke("random.randint", [1, 6]) == expected


def test_unknown_function(ffi):
    with pytest.raises(SuiUnknownFFIFunction) as e:
        ffi.invoke("math.nope", [1])
    assert isinstance(e.value, SuiRuntimeError)
    assert e.value.kind == "UnknownFFIFunction"


@pytest.mark.parametrize("name, args", [
    ("math.sqrt", []),
    ("math.sqrt", [1, 2]),
    ("math.sqrt", ["16"]),
    ("math.sqrt", [-1]),
    ("math.log", [0]),
    ("len", [5]),
    ("int", ["abc"]),
    ("max", []),
    ("round", [1.5, 0.5]),
])
def test_argument_errors(ffi, name, args):
    with pytest.raises(SuiFFIArgumentError):
        ffi.invoke(name, args)


def test_signatures_are_derived_from_annotations(ffi):
    sig = ffi.get_signature("round")
    assert (sig['min_args'], sig['max_args']) == (1, 2)
    assert ffi.get_signature("max")['max_args'] is None
    assert ffi.get_signature("randint")['uses_rng'] is True


def test_custom_functions_need_annotations():
    def untyped(x): return x
    with pytest.raises(TypeError):
        get_signature(untyped)


def test_custom_dispatcher_registration():
    def twice(x: int | float) -> int | float: return x * 2
    ffi = Dispatcher()
    ffi.add_function("util.twice", twice)
    assert ffi.invoke("twice", [21]) == 42
    with pytest.raises(SuiFFIError):
        ffi.invoke("twice", ["x"])
