## Copyright © 2025, Alex J. Champandard.  Licensed under AGPLv3; see LICENSE! ⚘

import os

from .types import Instruction, Function, Program, Scope, Token, TokenKind
from .errors import (SuiError, SuiArityError, SuiUnmatchedBrace, SuiUnterminatedFunction, SuiNestedFunction,
                     SuiDuplicateLabel, SuiMisplacedImport, SuiDuplicateFunctionId)
from .lexer import tokenize, tokenize_source
from .linker import link_labels


# Operand kinds per opcode; a trailing `*` kind accepts zero or more further operands.
#   dest:  local or global variable, written by the instruction.
#   ref:   any variable, including arguments.
#   value: variable or integer/float/string literal.
#   label: integer or bare label name.
#   id:    non-negative integer (function id or arity).
#   name:  string literal or bare name.
OPCODES: dict[str, tuple[str, ...]] = {
    '=': ('dest', 'value'),
    '+': ('dest', 'value', 'value'),
    '-': ('dest', 'value', 'value'),
    '*': ('dest', 'value', 'value'),
    '/': ('dest', 'value', 'value'),
    '%': ('dest', 'value', 'value'),
    '<': ('dest', 'value', 'value'),
    '>': ('dest', 'value', 'value'),
    '~': ('dest', 'value', 'value'),
    '&': ('dest', 'value', 'value'),
    '|': ('dest', 'value', 'value'),
    '!': ('dest', 'value'),
    '?': ('value', 'label'),
    '@': ('label',),
    ':': ('label',),
    '#': ('id', 'id', 'brace'),
    '}': (),
    '$': ('dest', 'id', 'value*'),
    '^': ('value',),
    '[': ('dest', 'value'),
    ']': ('dest', 'ref', 'value'),
    '{': ('ref', 'value', 'value'),
    '.': ('value',),
    ',': ('dest',),
    'R': ('dest', 'name', 'value*'),
    'P': ('dest', 'name', 'value*'),
    '_': ('name',),
}

_LITERALS = (TokenKind.INTEGER, TokenKind.FLOAT, TokenKind.STRING)


def _operand(kind: str, tok: Token, opcode: str, position: int, meta: dict):
    def fail(expected):
        raise SuiArityError(f"Operand {position} of `{opcode}` must be {expected}, got `{tok.text}`.",
                            opcode=opcode, **meta)

    match kind.rstrip('*'):
        case 'dest':
            if tok.kind != TokenKind.VARIABLE or tok.value.scope is Scope.ARGUMENT:
                fail("a local or global variable")
        case 'ref':
            if tok.kind != TokenKind.VARIABLE: fail("a variable")
        case 'value':
            if tok.kind != TokenKind.VARIABLE and tok.kind not in _LITERALS: fail("a variable or literal")
        case 'label':
            if tok.kind not in (TokenKind.INTEGER, TokenKind.LABEL): fail("a label")
        case 'id':
            if tok.kind != TokenKind.INTEGER or tok.value < 0: fail("a non-negative integer")
        case 'name':
            if tok.kind not in (TokenKind.STRING, TokenKind.LABEL): fail("a name")
        case 'brace':
            if tok.kind != TokenKind.BRACE_OPEN: fail("`{`")
        case _:
            raise NotImplementedError(kind)
    return tok.value


def parse_line(tokens: list[Token], lineno: int = 1, filename: str | None = None) -> Instruction:
    """Check one line's operands against the opcode table and build its instruction."""
    head, args = tokens[0], tokens[1:]
    meta = {'filename': filename, 'line': lineno}
    if head.kind not in (TokenKind.OPCODE, TokenKind.BRACE_CLOSE):
        raise SuiArityError(f"Line must start with an instruction, got `{head.text}`.", **meta)

    opcode, kinds = head.value, OPCODES[head.value]
    variadic = bool(kinds) and kinds[-1].endswith('*')
    fixed = len(kinds) - 1 if variadic else len(kinds)
    if len(args) < fixed or (not variadic and len(args) > fixed):
        expected = f"at least {fixed}" if variadic else f"exactly {fixed}"
        raise SuiArityError(f"`{opcode}` expects {expected} operand(s), got {len(args)}.", opcode=opcode, **meta)

    operands = []
    for i, tok in enumerate(args):
        kind = kinds[min(i, len(kinds) - 1)]
        operands.append(_operand(kind, tok, opcode, i + 1, meta))
    if opcode == '#':
        operands = operands[:2]  # The brace only marks the block.
    return Instruction(opcode, tuple(operands), line=lineno, filename=filename)


class _FunctionBuilder:
    def __init__(self, header: Instruction):
        self.header = header
        self.body: list[Instruction] = []
        self.labels: dict = {}

    def build(self) -> Function:
        fid, arity = self.header.operands
        body = link_labels(self.body, self.labels, scope=f"function {fid}")
        return Function(fid, arity, body, dict(self.labels), line=self.header.line, filename=self.header.filename)


def parse(source: str, filename: str | None = None) -> Program:
    """Parse source text into a Program with labels resolved; imports are kept as `_` instructions."""
    top: list[Instruction] = []
    top_labels: dict = {}
    functions: dict[int, Function] = {}
    current: _FunctionBuilder | None = None

    for lineno, tokens in tokenize_source(source, filename=filename):
        instr = parse_line(tokens, lineno, filename)
        meta = {'filename': filename, 'line': lineno, 'opcode': instr.opcode}

        match instr.opcode:
            case '#':
                if current is not None:
                    raise SuiNestedFunction("Function definitions cannot be nested.", **meta)
                if (fid := instr.operands[0]) in functions:
                    raise SuiDuplicateFunctionId(f"Function `{fid}` is already defined on line {functions[fid].line}.",
                                                 filename=filename, line=lineno)
                current = _FunctionBuilder(instr)
            case '}':
                if current is None:
                    raise SuiUnmatchedBrace("Closing `}` without an open function definition.", **meta)
                function = current.build()
                functions[function.id] = function
                current = None
            case _:
                body, labels = (top, top_labels) if current is None else (current.body, current.labels)
                if instr.opcode == '_' and current is not None:
                    raise SuiMisplacedImport("Imports are only allowed at the top level.", **meta)
                if instr.opcode == ':':
                    if (label := instr.operands[0]) in labels:
                        raise SuiDuplicateLabel(f"Label `{label}` is already defined in this scope.", **meta)
                    labels[label] = len(body)
                body.append(instr)

    if current is not None:
        raise SuiUnterminatedFunction(f"Function `{current.header.operands[0]}` is never closed with `}}`.",
                                      filename=filename, line=current.header.line, opcode='#')

    return Program(link_labels(top, top_labels), functions, top_labels, filename=filename)


def validate(source: str, filename: str | None = None) -> list[SuiError]:
    """Collect every per-line error, then structural ones, without stopping at the first."""
    errors = []
    for lineno, line in enumerate(source.splitlines(), start=1):
        try:
            if tokens := tokenize(line, filename=filename, lineno=lineno):
                parse_line(tokens, lineno, filename)
        except SuiError as exc:
            errors.append(exc)
    if not errors:
        try:
            parse(source, filename=filename)
        except SuiError as exc:
            errors.append(exc)
    return errors


def format_source_context(filename, line, source=None, around: int = 2) -> str:
    """Show the lines surrounding `line`, highlighting it, for error reports."""
    if line is None: return ""
    if source is None:
        if filename is None or not os.path.isfile(filename): return ""
        with open(filename, 'r', encoding='utf-8', errors='replace') as f:
            source = f.read()
    lines = source.splitlines()
    if not (1 <= line <= len(lines)): return ""

    start, end = max(0, line - 1 - around), min(len(lines), line + around)
    result = [f"\033[97m  File \"{filename or '<input>'}\", line {line}\033[0m"]
    for i in range(start, end):
        color = '\033[97m' if i + 1 == line else '\033[90m'
        result.append(f"{color}{i+1:>5} |\033[0m {lines[i]}")
    return '\n' + '\n'.join(result) + '\n'

