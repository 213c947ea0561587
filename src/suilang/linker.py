## Copyright © 2025, Alex J. Champandard.  Licensed under AGPLv3; see LICENSE! ⚘

from dataclasses import replace

from .types import Instruction, Program
from .errors import SuiUnresolvedLabel, SuiUnresolvedFunction


JUMPS = ('?', '@')


def _label_of(instr: Instruction):
    return instr.operands[-1]


def link_labels(body: list, labels: dict, *, scope: str = "top level") -> tuple:
    """Resolve each jump to the index of its label's `:` instruction within the same body."""
    output = []
    for instr in body:
        if instr.opcode in JUMPS:
            if (label := _label_of(instr)) not in labels:
                raise SuiUnresolvedLabel(f"Label `{label}` is not defined in {scope}.",
                                         filename=instr.filename, line=instr.line, opcode=instr.opcode)
            instr = replace(instr, target=labels[label])
        output.append(instr)
    return tuple(output)


def rebase(body, offset: int):
    """Shift resolved jump targets of already-linked code that moves `offset` places later."""
    for instr in body:
        yield replace(instr, target=instr.target + offset) if instr.target is not None else instr


def link_imports(body: tuple, spliced: dict[int, tuple]) -> tuple[tuple, dict[int, int]]:
    """Insert imported top-level code right after each `_` instruction listed in `spliced`.

    Returns the merged sequence plus the map from old to new indices of the original
    instructions, which is also applied to their own jump targets.
    """
    merged, index_map = [], {}
    for i, instr in enumerate(body):
        index_map[i] = len(merged)
        merged.append(instr)
        if (code := spliced.get(i)):
            merged.extend(rebase(code, len(merged)))

    own = set(index_map.values())
    for j, instr in enumerate(merged):
        if j in own and instr.target is not None:
            merged[j] = replace(instr, target=index_map[instr.target])
    return tuple(merged), index_map


def check_calls(program: Program) -> None:
    """Fail fast on any call whose function id has no definition in the merged program."""
    bodies = [program.instructions] + [fn.body for fn in program.functions.values()]
    for body in bodies:
        for instr in body:
            if instr.opcode == '$' and (fid := instr.operands[1]) not in program.functions:
                raise SuiUnresolvedFunction(f"Function `{fid}` is called but never defined.",
                                            filename=instr.filename, line=instr.line, opcode='$')
