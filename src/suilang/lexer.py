## suilang — Copyright © 2025, Alex J. Champandard.  Licensed under AGPLv3; see LICENSE! ⚘

import lark

from .types import Token, TokenKind, VarRef, parse_integer
from .errors import SuiUnterminatedString, SuiMalformedToken, SuiUnknownOpcode


OPCODE_CHARS = "=+-*/%<>~!&|?@:#}$^[]{.,RP_"

GRAMMAR = r"""?start: line?
line: OPCODE operand*
?operand: VARIABLE | FLOAT | INTEGER | STRING | NAME | LBRACE

// Every token must end at whitespace, a comment, or the end of the line.
OPCODE: /[=+\-*\/%<>~!&|?@:#}$^\[\]{.,RP_](?=[\s;]|$)/
VARIABLE.4: /[vga]\d+(?=[\s;]|$)/
FLOAT.3: /-?\d+(?:\.\d+(?:[eE][+-]?\d+)?|[eE][+-]?\d+)(?=[\s;]|$)/
INTEGER.2: /-?\d+(?=[\s;]|$)/
STRING.2: /"[^"\n]*"(?=[\s;]|$)/
NAME.1: /[A-Za-z_][A-Za-z0-9_.]*(?=[\s;]|$)/
LBRACE: /\{(?=[\s;]|$)/

COMMENT: /;[^\n]*/

%import common.WS_INLINE
%ignore WS_INLINE
%ignore COMMENT
"""

_PARSER = lark.Lark(GRAMMAR, start='start', parser='lalr', lexer='contextual')


def _convert(tok: lark.Token, filename=None, lineno=None) -> Token:
    text, column = str(tok), tok.column or 0
    match tok.type:
        case 'OPCODE':
            kind = TokenKind.BRACE_CLOSE if text == '}' else TokenKind.OPCODE
            return Token(kind, text, text, column)
        case 'VARIABLE':
            return Token(TokenKind.VARIABLE, text, VarRef.from_text(text), column)
        case 'INTEGER':
            if (value := parse_integer(text)) is None:
                raise SuiMalformedToken(f"Integer literal `{text}` does not fit in 64 bits.", filename=filename, line=lineno)
            return Token(TokenKind.INTEGER, text, value, column)
        case 'FLOAT':
            return Token(TokenKind.FLOAT, text, float(text), column)
        case 'STRING':
            return Token(TokenKind.STRING, text, text[1:-1], column)
        case 'NAME':
            return Token(TokenKind.LABEL, text, text, column)
        case 'LBRACE':
            return Token(TokenKind.BRACE_OPEN, text, text, column)
    raise NotImplementedError(f"Unexpected token type {tok.type} from lexer.")


def _lex_error(line: str, column: int, filename, lineno):
    """Turn a lark failure position into the most specific lexical error for that token."""
    offset = max(column - 1, 0)
    chunk = line[offset:].split(None, 1)[0] if line[offset:].strip() else line[offset:]
    first_token = line[:offset].strip() == ''

    if chunk.startswith('"') and '"' not in line[offset+1:]:
        return SuiUnterminatedString(f"String starting at column {column} is never closed.",
                                     filename=filename, line=lineno)
    if first_token:
        return SuiUnknownOpcode(f"Unknown instruction `{chunk}`.", filename=filename, line=lineno)
    return SuiMalformedToken(f"Malformed token `{chunk}` at column {column}.", filename=filename, line=lineno)


def tokenize(line: str, *, filename: str | None = None, lineno: int | None = None) -> list[Token]:
    """Split one source line into tokens; blank and comment-only lines give an empty list."""
    line = line.strip()
    try:
        tree = _PARSER.parse(line)
    except lark.exceptions.UnexpectedCharacters as exc:
        raise _lex_error(line, exc.column, filename, lineno) from None
    except lark.exceptions.UnexpectedToken as exc:
        raise _lex_error(line, exc.column if isinstance(exc.column, int) else 1, filename, lineno) from None

    # An empty `start` means the line held nothing but whitespace or a comment.
    if tree.data == 'start':
        return []
    return [_convert(t, filename, lineno) for t in tree.children]


def tokenize_source(source: str, *, filename: str | None = None):
    """Yield `(lineno, tokens)` for every non-blank line of a source text."""
    for lineno, line in enumerate(source.splitlines(), start=1):
        if tokens := tokenize(line, filename=filename, lineno=lineno):
            yield lineno, tokens
