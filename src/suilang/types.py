## suilang — Copyright © 2025, Alex J. Champandard.  Licensed under AGPLv3; see LICENSE! ⚘

from enum import Enum
from pathlib import Path
from typing import NamedTuple
from dataclasses import dataclass, field


class Void:
    """The uninitialized/default value, produced by a function that ends without returning."""
    __slots__ = ()
    _void_singleton = None

    def __new__(cls):
        # Only one singleton creation is allowed, and it's the one just below.
        if cls._void_singleton is None:
            cls._void_singleton = super().__new__(cls)
            return cls._void_singleton
        # By convention, all other code should use `void` explicitly.
        raise ValueError("Use the canonical `void` instance for the empty value")

    def __repr__(self):
        return "void"

    def __bool__(self):
        raise TypeError("Void truth value is ambiguous; compare with `is void` or `is not void`.")

# All checks for the empty value must be done by comparing to this.
void = Void()


class Array:
    """Fixed-length, mutable buffer of values.  Copying the handle aliases the buffer, so a
    write through any variable holding it is visible through every other one.
    """
    __slots__ = ('items',)

    def __init__(self, size: int = 0, items: list | None = None):
        self.items = list(items) if items is not None else [0] * size

    def __len__(self):
        return len(self.items)

    def __iter__(self):
        return iter(self.items)

    def __getitem__(self, index: int):
        return self.items[index]

    def __setitem__(self, index: int, value):
        self.items[index] = value

    def __repr__(self):
        return f"Array({self.items!r})"


# All concrete Sui values; booleans are never produced, comparisons yield 0 or 1.
Value = int | float | str | Array | Void
Number = int | float


INT_MIN, INT_MAX = -2**63, 2**63 - 1


def is_number(x) -> bool:
    return isinstance(x, (int, float)) and not isinstance(x, bool)


def fits_integer(x: int) -> bool:
    return INT_MIN <= x <= INT_MAX


def parse_integer(text: str) -> int | None:
    """Parse a decimal literal as a 64-bit Integer; None when it is out of range.

    Raises ValueError for text that is not an integer at all.
    """
    text = text.strip()
    digits = text.lstrip('+-')
    # Anything past 19 significant digits is out of range; skip int() and its digit limit.
    if len(digits.lstrip('0')) > 19:
        if not digits.isdecimal(): raise ValueError(f"invalid integer literal: {text!r}")
        return None
    value = int(text)
    return value if fits_integer(value) else None


def kind_of(x) -> str:
    match x:
        case bool():
            return 'Boolean'
        case int():
            return 'Integer'
        case float():
            return 'Float'
        case str():
            return 'Str'
        case Array():
            return 'Array'
        case Void():
            return 'Void'
    return type(x).__name__


class Scope(Enum):
    LOCAL = 'v'
    GLOBAL = 'g'
    ARGUMENT = 'a'


class VarRef(NamedTuple):
    scope: Scope
    index: int

    @classmethod
    def from_text(cls, text: str) -> "VarRef":
        return cls(Scope(text[0]), int(text[1:]))

    def __str__(self):
        return f"{self.scope.value}{self.index}"


class TokenKind:
    OPCODE = 'Opcode'
    VARIABLE = 'VariableRef'
    INTEGER = 'IntLiteral'
    FLOAT = 'FloatLiteral'
    STRING = 'StringLiteral'
    LABEL = 'LabelRef'
    BRACE_OPEN = 'BraceOpen'
    BRACE_CLOSE = 'BraceClose'


class Token(NamedTuple):
    kind: str
    text: str
    value: object
    column: int = 0


@dataclass(frozen=True)
class Instruction:
    opcode: str
    operands: tuple = ()
    line: int = field(default=0, compare=False)
    filename: str | None = field(default=None, compare=False)
    target: int | None = None       # Resolved jump index within the enclosing body.

    def __repr__(self):
        return f"{self.opcode} {' '.join(map(str, self.operands))}".rstrip()


@dataclass(frozen=True)
class Function:
    id: int
    arity: int
    body: tuple                     # tuple[Instruction]
    labels: dict                    # label -> index of its `:` instruction in body
    line: int = field(default=0, compare=False)
    filename: str | None = field(default=None, compare=False)


@dataclass(frozen=True)
class Program:
    instructions: tuple             # tuple[Instruction], the top-level sequence
    functions: dict                 # function id -> Function
    labels: dict                    # top-level label -> instruction index
    filename: str | None = field(default=None, compare=False)


@dataclass
class Module:
    path: Path
    instructions: tuple             # top-level code with its own imports already spliced in
    functions: dict                 # functions this file defines
    labels: dict = field(default_factory=dict)


class FrameInfo(NamedTuple):
    function_id: int | None         # None for the top level.
    filename: str | None
    line: int | None

    def __str__(self):
        where = "<top-level>" if self.function_id is None else f"function {self.function_id}"
        return f"{self.filename or '<input>'}:{self.line or '?'} in {where}"
