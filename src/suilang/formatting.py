## Copyright © 2025, Alex J. Champandard.  Licensed under AGPLv3; see LICENSE! ⚘

import re

from .types import Array, Void, Instruction, Program, FrameInfo


def write_without_ansi(write_fn):
    """Wrapper function that strips ANSI codes before calling the original writer."""
    ansi_re = re.compile(r'\033\[[0-9;]*m')
    return lambda text: write_fn(ansi_re.sub('', text))


def format_value(it, _enclosing: frozenset = frozenset()) -> str:
    """Render a value the way the `.` instruction prints it.  An array nested inside
    itself is shown as `[...]`, like Python's own list repr.
    """
    match it:
        case Array():
            if id(it) in _enclosing:
                return '[...]'
            inner = _enclosing | {id(it)}
            return '[' + ', '.join(format_value(v, inner) for v in it) + ']'
        case Void():
            return 'null'
        case float():
            return repr(it)
    return str(it)


def format_operand(op) -> str:
    if isinstance(op, str):
        return f'"{op}"'
    return str(op)


def format_instruction(instr: Instruction) -> str:
    """Serialize an instruction back to a single source line."""
    match instr.opcode:
        case '#':
            return f"# {instr.operands[0]} {instr.operands[1]} {{"
        case '?' | '@' | ':':
            # Labels are written as they were declared: integers or bare names.
            *head, label = instr.operands
            return ' '.join([instr.opcode, *map(format_operand, head), str(label)])
    return ' '.join([instr.opcode, *map(format_operand, instr.operands)])


def format_program(program: Program) -> str:
    """Serialize a whole program; function definitions come first, then the top-level code."""
    lines = []
    for function in program.functions.values():
        lines.append(format_instruction(Instruction('#', (function.id, function.arity))))
        lines.extend('    ' + format_instruction(instr) for instr in function.body)
        lines.append('}')
    lines.extend(format_instruction(instr) for instr in program.instructions)
    return '\n'.join(lines) + '\n'


def format_call_stack(call_stack: list[FrameInfo]) -> str:
    """Render a call-stack snapshot innermost last, like a Python traceback."""
    result = ["\033[90m  Call stack (most recent call last):\033[0m"]
    for frame in call_stack:
        where = "<top-level>" if frame.function_id is None else f"function {frame.function_id}"
        result.append(f"\033[97m    File \"{frame.filename or '<input>'}\", line {frame.line or '?'}, in {where}\033[0m")
    return '\n'.join(result) + '\n'


def show_step(step: int, depth: int, instr: Instruction | None, width: int = 48):
    where = f"{instr.filename or '<input>'}:{instr.line}" if instr is not None else '∅'
    text = format_instruction(instr) if instr is not None else '∅'
    if len(text) > width:
        text = text[:width-2] + ' …'
    print(f"\033[90m{step:>3} :\033[0m  \033[36m{'·' * depth}\033[0m {text:<{width}} \033[90m{where}\033[0m")
