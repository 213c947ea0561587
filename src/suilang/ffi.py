## Copyright © 2025, Alex J. Champandard.  Licensed under AGPLv3; see LICENSE! ⚘

import sys
import math
import random
import inspect
from types import UnionType
from typing import Any, Callable, get_args
from dataclasses import dataclass, field

from .types import Array, Void, Value, kind_of, fits_integer
from .errors import SuiUnknownFFIFunction, SuiFFIArgumentError, SuiIntegerOverflow
from .formatting import format_value


num = int | float

## MATH
def ffi_math_sqrt(x: num) -> float: return math.sqrt(x)
def ffi_math_pow(b: num, a: num) -> float: return math.pow(b, a)
def ffi_math_sin(x: num) -> float: return math.sin(x)
def ffi_math_cos(x: num) -> float: return math.cos(x)
def ffi_math_tan(x: num) -> float: return math.tan(x)
def ffi_math_floor(x: num) -> int: return math.floor(x)
def ffi_math_ceil(x: num) -> int: return math.ceil(x)
def ffi_math_log(x: num) -> float: return math.log(x)
def ffi_math_log10(x: num) -> float: return math.log10(x)
def ffi_math_exp(x: num) -> float: return math.exp(x)

## CORE
def ffi_abs(x: num) -> num: return abs(x)
def ffi_max(x: num, *rest: num) -> num: return max(x, *rest)
def ffi_min(x: num, *rest: num) -> num: return min(x, *rest)
def ffi_len(x: str | Array) -> int: return len(x)
def ffi_str(x: Any) -> str: return format_value(x)
def ffi_concat(*parts: Any) -> str: return ''.join(format_value(p) for p in parts)

def ffi_round(x: num, ndigits: int | None = None) -> num:
    """Round half away from zero; an explicit number of digits keeps the result a Float."""
    factor = 10.0 ** (ndigits or 0)
    rounded = math.copysign(math.floor(abs(x) * factor + 0.5), x) / factor
    return int(rounded) if ndigits is None else rounded

def ffi_int(x: num | str) -> int:
    if isinstance(x, str):
        x = x.strip()
        try: return int(x)
        except ValueError: return int(float(x))
    return int(x)

def ffi_float(x: num | str) -> float: return float(x.strip() if isinstance(x, str) else x)

## RANDOM
def ffi_random_randint(lo: int, hi: int, *, rng: random.Random) -> int: return rng.randint(lo, hi)


NAMESPACES = ('math', 'random')


def get_ffi_name(py_name: str) -> str:
    """Map a Python builtin name to its namespaced Sui name: `ffi_math_sqrt` becomes `math.sqrt`."""
    name = py_name.removeprefix('ffi_')
    for ns in NAMESPACES:
        if name.startswith(ns + '_'):
            return f"{ns}.{name[len(ns)+1:]}"
    return name

def _kinds(annotation) -> tuple:
    if annotation is Any or annotation is inspect.Parameter.empty: return (object,)
    if isinstance(annotation, UnionType): return tuple(a for a in get_args(annotation) if a is not type(None))
    return (annotation,)


def get_signature(fn: Callable, name: str | None = None) -> dict:
    """Derive arity and accepted value kinds from a builtin's annotations.

    Keyword-only parameters are not visible to Sui code; a keyword-only `rng` receives
    the dispatcher's random source.
    """
    sig = inspect.signature(fn)
    params = list(sig.parameters.values())
    positional = [p for p in params if p.kind in (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD)]
    vararg = next((p for p in params if p.kind == inspect.Parameter.VAR_POSITIONAL), None)

    if missing := [p.name for p in positional if p.annotation is inspect.Parameter.empty]:
        raise TypeError(f"Builtin `{name or fn.__name__}` must annotate parameters: {', '.join(missing)}.")

    required = sum(1 for p in positional if p.default is inspect.Parameter.empty)
    return {
        'name': name or get_ffi_name(fn.__name__),
        'min_args': required,
        'max_args': None if vararg else len(positional),
        'inputs': [_kinds(p.annotation) for p in positional],
        'variadic': _kinds(vararg.annotation) if vararg else None,
        'uses_rng': any(p.name == 'rng' and p.kind == inspect.Parameter.KEYWORD_ONLY for p in params),
    }


def _accepts(value, kinds: tuple) -> bool:
    if object in kinds: return True
    # Integers are accepted wherever floats are, but never booleans.
    return isinstance(value, kinds) and not isinstance(value, bool)


@dataclass
class Dispatcher:
    """Immutable-by-convention table of builtins reachable from `R` and `P` instructions."""
    functions: dict[str, Callable[..., Any]] = field(default_factory=dict)
    aliases: dict[str, str] = field(default_factory=dict)
    rng: random.Random = field(default_factory=random.Random)

    def add_function(self, name: str, fn: Callable[..., Any]) -> None:
        fn.__sui_meta__ = get_signature(fn, name)
        self.functions[name] = fn
        if '.' in name:
            self.aliases.setdefault(name.split('.', 1)[1], name)

    def get_function(self, name: str) -> Callable[..., Any]:
        resolved = name if name in self.functions else self.aliases.get(name, name)
        if (fn := self.functions.get(resolved)) is None:
            raise SuiUnknownFFIFunction(f"Builtin function `{name}` is not defined.")
        return fn

    def get_signature(self, name: str) -> dict:
        return self.get_function(name).__sui_meta__

    def list_functions(self) -> dict[str, dict]:
        return {n: fn.__sui_meta__ for n, fn in self.functions.items()}

    def invoke(self, name: str, args: list[Value]) -> Value:
        fn = self.get_function(name)
        meta = fn.__sui_meta__
        self._check_arguments(name, meta, args)

        kwargs = {'rng': self.rng} if meta['uses_rng'] else {}
        try:
            result = fn(*args, **kwargs)
        except (ValueError, OverflowError, ZeroDivisionError) as exc:
            raise SuiFFIArgumentError(f"Builtin `{name}` failed for ({_describe(args)}): {exc}") from exc
        if isinstance(result, int) and not isinstance(result, bool) and not fits_integer(result):
            raise SuiIntegerOverflow(f"Builtin `{name}` returned an Integer outside the 64-bit range.")
        return result

    def _check_arguments(self, name: str, meta: dict, args: list) -> None:
        lo, hi = meta['min_args'], meta['max_args']
        if len(args) < lo or (hi is not None and len(args) > hi):
            expected = f"{lo}" if lo == hi else (f"at least {lo}" if hi is None else f"{lo} to {hi}")
            raise SuiFFIArgumentError(f"Builtin `{name}` expects {expected} argument(s), got {len(args)}.")
        for i, value in enumerate(args):
            kinds = meta['inputs'][i] if i < len(meta['inputs']) else meta['variadic']
            if not _accepts(value, kinds):
                names = ' or '.join(_kind_name(k) for k in kinds)
                raise SuiFFIArgumentError(f"Builtin `{name}` expects {names} for argument {i+1}, got {kind_of(value)}.")


def _kind_name(tp) -> str:
    return {int: 'Integer', float: 'Float', str: 'Str', Array: 'Array', Void: 'Void'}.get(tp, getattr(tp, '__name__', str(tp)))

def _describe(args) -> str:
    return ', '.join(format_value(a) for a in args)


def load_builtins(rng: random.Random | None = None) -> Dispatcher:
    ffi = Dispatcher(rng=rng or random.Random())
    module = sys.modules[__name__]
    for k in dir(module):
        if not k.startswith('ffi_'): continue
        ffi.add_function(get_ffi_name(k), getattr(module, k))
    return ffi
