## Copyright © 2025, Alex J. Champandard.  Licensed under AGPLv3; see LICENSE! ⚘

import math

from .types import Array, Void, is_number, kind_of, fits_integer
from .errors import SuiTypeMismatch, SuiDivisionByZero, SuiIntegerOverflow


def _mismatch(op: str, *values):
    kinds = ', '.join(kind_of(v) for v in values)
    return SuiTypeMismatch(f"`{op}` is not defined for ({kinds}).")

def _numbers(op: str, b, a):
    if not (is_number(b) and is_number(a)): raise _mismatch(op, b, a)
    return b, a

def _divisor(op: str, b, a):
    b, a = _numbers(op, b, a)
    if a == 0: raise SuiDivisionByZero(f"`{op}` by zero.")
    return b, a

def _checked(op: str, result):
    """Integers are 64-bit; a result outside that range fails instead of wrapping."""
    if isinstance(result, int) and not fits_integer(result):
        raise SuiIntegerOverflow(f"`{op}` result does not fit in a 64-bit Integer.")
    return result


## ARITHMETIC
def op_add(b, a):
    if isinstance(b, str) and isinstance(a, str): return b + a
    b, a = _numbers('+', b, a)
    return _checked('+', b + a)

def op_sub(b, a): b, a = _numbers('-', b, a); return _checked('-', b - a)
def op_mul(b, a): b, a = _numbers('*', b, a); return _checked('*', b * a)
def op_div(b, a): b, a = _divisor('/', b, a); return b / a

def op_mod(b, a):
    """Remainder truncated toward zero, so it takes the sign of the dividend."""
    b, a = _divisor('%', b, a)
    if isinstance(b, int) and isinstance(a, int):
        r = abs(b) % abs(a)
        return -r if b < 0 else r
    return math.fmod(b, a)


## RELATIONAL
def _ordered(op: str, b, a):
    if (is_number(b) and is_number(a)) or (isinstance(b, str) and isinstance(a, str)):
        return b, a
    raise _mismatch(op, b, a)

def op_lt(b, a): b, a = _ordered('<', b, a); return int(b < a)
def op_gt(b, a): b, a = _ordered('>', b, a); return int(b > a)

def op_eq(b, a):
    match b, a:
        case (int() | float(), int() | float()) if is_number(b) and is_number(a):
            return int(b == a)
        case (str(), str()):
            return int(b == a)
        case (Array(), Array()) | (Void(), Void()):
            return int(b is a)
    return 0


## LOGICAL
def truth(x, op: str = '?') -> bool:
    """Numeric truthiness: only numbers have a truth value, and zero is false."""
    if not is_number(x): raise _mismatch(op, x)
    return x != 0

def op_not(x): return int(not truth(x, '!'))
def op_and(b, a): b, a = truth(b, '&'), truth(a, '&'); return int(b and a)
def op_or(b, a): b, a = truth(b, '|'), truth(a, '|'); return int(b or a)


BINARY = {
    '+': op_add, '-': op_sub, '*': op_mul, '/': op_div, '%': op_mod,
    '<': op_lt, '>': op_gt, '~': op_eq, '&': op_and, '|': op_or,
}
