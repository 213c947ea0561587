## Copyright © 2025, Alex J. Champandard.  Licensed under AGPLv3; see LICENSE! ⚘


class SuiError(Exception):
    def __init__(self, message: str = "", *, filename=None, line=None):
        """Base class for all Sui-raised errors."""
        super().__init__(message)
        self.filename: str | None = filename
        self.line: int | None = line

    @property
    def kind(self) -> str:
        return type(self).__name__.removeprefix('Sui')


## LEXING
class SuiLexError(SuiError, ValueError):
    pass

class SuiUnterminatedString(SuiLexError):
    pass

class SuiMalformedToken(SuiLexError):
    pass

class SuiUnknownOpcode(SuiLexError):
    pass


## PARSING
class SuiParseError(SuiError):
    def __init__(self, message, *, filename=None, line=None, opcode=None):
        super().__init__(message, filename=filename, line=line)
        self.opcode = opcode

class SuiArityError(SuiParseError):
    pass

class SuiUnmatchedBrace(SuiParseError):
    pass

class SuiUnterminatedFunction(SuiParseError):
    pass

class SuiNestedFunction(SuiParseError):
    pass

class SuiDuplicateLabel(SuiParseError):
    pass

class SuiMisplacedImport(SuiParseError):
    pass

class SuiUnresolvedLabel(SuiParseError):
    pass

class SuiUnresolvedFunction(SuiParseError):
    pass


## MODULES
class SuiModuleError(SuiError, ImportError):
    pass

class SuiModuleNotFound(SuiModuleError):
    pass

class SuiCyclicImport(SuiModuleError):
    def __init__(self, message, *, filename=None, line=None, chain=()):
        super().__init__(message, filename=filename, line=line)
        self.chain: tuple = tuple(chain)

class SuiDuplicateFunctionId(SuiModuleError):
    """Two function definitions share one id somewhere in the merged program."""
    pass


## RUNTIME
class SuiRuntimeError(SuiError, RuntimeError):
    def __init__(self, message: str = "", *, filename=None, line=None, call_stack=None, output=None):
        super().__init__(message, filename=filename, line=line)
        self.instruction = None
        self.call_stack: list = list(call_stack or [])
        self.output: list[str] = list(output or [])

    def attach(self, instruction, call_stack, output) -> None:
        """Record where the failure happened, unless a more precise location is already known."""
        if instruction is not None:
            self.instruction = self.instruction or instruction
            self.filename = self.filename or instruction.filename
            self.line = self.line or instruction.line
        self.call_stack = list(call_stack)
        self.output = list(output)

class SuiTypeMismatch(SuiRuntimeError, TypeError):
    pass

class SuiDivisionByZero(SuiRuntimeError, ZeroDivisionError):
    pass

class SuiIntegerOverflow(SuiRuntimeError, OverflowError):
    pass

class SuiIndexOutOfBounds(SuiRuntimeError, IndexError):
    pass

class SuiUndefinedVariable(SuiRuntimeError, NameError):
    pass

class SuiArityMismatch(SuiRuntimeError, TypeError):
    pass

class SuiStackOverflow(SuiRuntimeError, RecursionError):
    pass

class SuiInputExhausted(SuiRuntimeError, EOFError):
    pass

class SuiInstructionLimitExceeded(SuiRuntimeError):
    pass


## FFI
class SuiFFIError(SuiRuntimeError):
    pass

class SuiUnknownFFIFunction(SuiFFIError, LookupError):
    pass

class SuiFFIArgumentError(SuiFFIError, TypeError):
    pass
