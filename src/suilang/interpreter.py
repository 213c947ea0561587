## Copyright © 2025, Alex J. Champandard.  Licensed under AGPLv3; see LICENSE! ⚘

from typing import Callable, Iterable
from dataclasses import dataclass, field

from .types import Array, Function, Program, Scope, VarRef, FrameInfo, Instruction, void, kind_of, parse_integer
from .errors import (SuiRuntimeError, SuiTypeMismatch, SuiIndexOutOfBounds, SuiUndefinedVariable, SuiArityMismatch,
                     SuiStackOverflow, SuiInputExhausted, SuiInstructionLimitExceeded)
from .ffi import Dispatcher, load_builtins
from .linker import check_calls
from .operators import BINARY, op_not, truth
from .formatting import format_value, show_step


DEFAULT_MAX_DEPTH = 1000

CONTINUES, HALTED, ERROR = 'continues', 'halted', 'error'


@dataclass
class Frame:
    function: Function | None                   # None for the top level.
    body: tuple
    arguments: tuple = ()
    locals: dict = field(default_factory=dict)
    ip: int = 0
    return_slot: VarRef | None = None           # Caller's variable that receives the result.

    @property
    def function_id(self) -> int | None:
        return None if self.function is None else self.function.id

    def info(self) -> FrameInfo:
        if self.ip < len(self.body):
            instr = self.body[self.ip]
            return FrameInfo(self.function_id, instr.filename, instr.line)
        if self.body:
            return FrameInfo(self.function_id, self.body[-1].filename, self.body[-1].line)
        fn = self.function
        return FrameInfo(self.function_id, fn and fn.filename, fn and fn.line)


@dataclass(frozen=True)
class StepResult:
    status: str                                 # CONTINUES, HALTED or ERROR.
    output: list
    error: SuiRuntimeError | None = None


def parse_input_line(line: str):
    """Lines read by `,` become an Integer if they parse as one, else a Float, else a Str."""
    text = line.rstrip('\r\n')
    try:
        if (value := parse_integer(text)) is not None:
            return value
    except ValueError:
        pass
    try:
        return float(text.strip())
    except ValueError:
        return text


class Machine:
    """Resumable execution state: one program, its globals, an explicit frame stack and the output so far."""

    def __init__(self, program: Program, argv: Iterable[str] = (), *, ffi: Dispatcher | None = None,
                 input_source: Iterable[str] | None = None, max_depth: int = DEFAULT_MAX_DEPTH,
                 on_input_exhausted: str = 'error', on_output: Callable[[str], None] | None = None):
        if on_input_exhausted not in ('error', 'void'):
            raise ValueError(f"Unknown input exhaustion policy `{on_input_exhausted}`.")
        check_calls(program)

        argv = [str(a) for a in argv]
        self.program = program
        self.globals: dict = {100: len(argv)} | {101 + i: a for i, a in enumerate(argv)}
        self.frames: list[Frame] = [Frame(None, program.instructions)]
        self.output: list[str] = []
        self.input = iter(input_source if input_source is not None else ())
        self.ffi = ffi or load_builtins()
        self.max_depth = max_depth
        self.on_input_exhausted = on_input_exhausted
        self.on_output = on_output
        self.error: SuiRuntimeError | None = None
        self.steps = 0
        self.halted = not program.instructions

    # Introspection ───────────────────────────────────────────────────────────────────────────
    @property
    def instruction_pointer(self) -> int | None:
        return None if self.halted else self.frames[-1].ip

    @property
    def current_instruction(self) -> Instruction | None:
        frame = self.frames[-1]
        return None if self.halted or frame.ip >= len(frame.body) else frame.body[frame.ip]

    @property
    def current_line(self) -> int | None:
        return None if self.halted else self.frames[-1].info().line

    @property
    def call_stack(self) -> list[FrameInfo]:
        return [f.info() for f in self.frames]

    @property
    def locals(self) -> dict:
        return self.frames[-1].locals

    @property
    def arguments(self) -> tuple:
        return self.frames[-1].arguments

    # Variables ───────────────────────────────────────────────────────────────────────────────
    def load(self, operand, frame: Frame | None = None):
        if not isinstance(operand, VarRef):
            return operand
        frame = frame or self.frames[-1]
        match operand.scope:
            case Scope.LOCAL:
                store = frame.locals
            case Scope.GLOBAL:
                store = self.globals
            case Scope.ARGUMENT:
                if operand.index >= len(frame.arguments):
                    raise SuiUndefinedVariable(f"Argument `{operand}` does not exist; "
                                               f"this frame received {len(frame.arguments)} argument(s).")
                return frame.arguments[operand.index]
        if operand.index not in store:
            raise SuiUndefinedVariable(f"Variable `{operand}` is read before being assigned.")
        return store[operand.index]

    def store(self, ref: VarRef, value, frame: Frame | None = None) -> None:
        frame = frame or self.frames[-1]
        match ref.scope:
            case Scope.LOCAL:
                frame.locals[ref.index] = value
            case Scope.GLOBAL:
                self.globals[ref.index] = value
            case Scope.ARGUMENT:
                raise SuiTypeMismatch(f"Argument `{ref}` is read-only.")

    # Execution ───────────────────────────────────────────────────────────────────────────────
    def step(self) -> StepResult:
        """Execute one instruction, turning a runtime failure into an `error` result instead of raising."""
        if self.error is not None:
            return StepResult(ERROR, list(self.output), self.error)
        if self.halted:
            return StepResult(HALTED, list(self.output))
        try:
            interpret_step(self)
        except SuiRuntimeError as exc:
            self.error = exc
            return StepResult(ERROR, list(self.output), exc)
        return StepResult(HALTED if self.halted else CONTINUES, list(self.output))

    def run(self, verbosity: int = 0, stats: dict | None = None, instruction_limit: int | None = None) -> list[str]:
        return interpret(self, verbosity=verbosity, stats=stats, instruction_limit=instruction_limit)


def _array_and_index(machine: Machine, array_op, index_op, opcode: str):
    array, index = machine.load(array_op), machine.load(index_op)
    if not isinstance(array, Array):
        raise SuiTypeMismatch(f"`{opcode}` expects an Array in `{array_op}`, got {kind_of(array)}.")
    if not isinstance(index, int) or isinstance(index, bool):
        raise SuiTypeMismatch(f"Array index must be an Integer, got {kind_of(index)}.")
    if not 0 <= index < len(array):
        raise SuiIndexOutOfBounds(f"Index {index} is out of bounds for an array of length {len(array)}.")
    return array, index


def _call(machine: Machine, instr: Instruction) -> None:
    dest, fid, *arg_ops = instr.operands
    function = machine.program.functions[fid]
    args = tuple(machine.load(op) for op in arg_ops)
    if len(args) != function.arity:
        raise SuiArityMismatch(f"Function {fid} takes {function.arity} argument(s), but {len(args)} were given.")
    if len(machine.frames) > machine.max_depth:
        raise SuiStackOverflow(f"Call depth exceeded the limit of {machine.max_depth} active calls.")
    machine.frames.append(Frame(function, function.body, args, return_slot=dest))


def _return(machine: Machine, value) -> None:
    if len(machine.frames) == 1:
        machine.halted = True
        return
    frame = machine.frames.pop()
    caller = machine.frames[-1]
    machine.store(frame.return_slot, value, caller)
    caller.ip += 1


def _read_input(machine: Machine):
    try:
        line = next(machine.input)
    except StopIteration:
        if machine.on_input_exhausted == 'void':
            return void
        raise SuiInputExhausted("No more input lines are available.") from None
    return parse_input_line(line)


def _execute(machine: Machine, frame: Frame, instr: Instruction) -> None:
    ops, load = instr.operands, machine.load

    match instr.opcode:
        case '=':
            machine.store(ops[0], load(ops[1]))
        case '+' | '-' | '*' | '/' | '%' | '<' | '>' | '~' | '&' | '|':
            machine.store(ops[0], BINARY[instr.opcode](load(ops[1]), load(ops[2])))
        case '!':
            machine.store(ops[0], op_not(load(ops[1])))
        case '?':
            if truth(load(ops[0])):
                frame.ip = instr.target
                return
        case '@':
            frame.ip = instr.target
            return
        case ':' | '_':
            pass
        case '$':
            _call(machine, instr)
            return
        case '^':
            _return(machine, load(ops[0]))
            return
        case '[':
            size = load(ops[1])
            if not isinstance(size, int) or isinstance(size, bool) or size < 0:
                raise SuiTypeMismatch(f"Array size must be a non-negative Integer, got {format_value(size)}.")
            machine.store(ops[0], Array(size))
        case ']':
            array, index = _array_and_index(machine, ops[1], ops[2], ']')
            machine.store(ops[0], array[index])
        case '{':
            array, index = _array_and_index(machine, ops[0], ops[1], '{')
            array[index] = load(ops[2])
        case '.':
            text = format_value(load(ops[0]))
            machine.output.append(text)
            if machine.on_output is not None:
                machine.on_output(text)
        case ',':
            machine.store(ops[0], _read_input(machine))
        case 'R' | 'P':
            args = [load(op) for op in ops[2:]]
            machine.store(ops[0], machine.ffi.invoke(ops[1], args))
        case _:
            raise NotImplementedError(f"Opcode `{instr.opcode}` has no implementation.")
    frame.ip += 1


def _settle(machine: Machine) -> None:
    top = machine.frames[0]
    if len(machine.frames) == 1 and top.ip >= len(top.body):
        machine.halted = True


def interpret_step(machine: Machine) -> None:
    frame = machine.frames[-1]
    if frame.ip >= len(frame.body):
        # Falling off the end of a function body returns void.
        _return(machine, void)
        machine.steps += 1
        _settle(machine)
        return

    instr = frame.body[frame.ip]
    try:
        _execute(machine, frame, instr)
    except SuiRuntimeError as exc:
        # Failing instructions raise before the frame stack changes.
        exc.attach(instr, machine.call_stack, machine.output)
        raise
    machine.steps += 1
    _settle(machine)


def interpret(machine: Machine, verbosity: int = 0, stats: dict | None = None, instruction_limit: int | None = None) -> list[str]:
    def is_notable(instr):
        return instr is None or instr.opcode in ('$', '^', '_')

    step = 0
    try:
        while not machine.halted:
            if instruction_limit is not None and step >= instruction_limit:
                exc = SuiInstructionLimitExceeded(f"Execution stopped after {instruction_limit} instructions.")
                exc.attach(machine.current_instruction, machine.call_stack, machine.output)
                machine.error = exc
                raise exc

            instr = machine.current_instruction
            if verbosity == 2 or (verbosity == 1 and (is_notable(instr) or step == 0)):
                show_step(step, len(machine.frames) - 1, instr)

            step += 1
            try:
                interpret_step(machine)
            except SuiRuntimeError as exc:
                machine.error = exc
                raise
    finally:
        if stats is not None:
            stats['steps'] = stats.get('steps', 0) + step

    return machine.output
