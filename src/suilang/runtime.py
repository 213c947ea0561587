## suilang — Copyright © 2025, Alex J. Champandard.  Licensed under AGPLv3; see LICENSE! ⚘

import os
import random
from typing import Any, Callable, Iterable

from .types import Program
from .errors import SuiError
from .parser import parse, validate
from .loader import ModuleResolver, SOURCE_SUFFIX
from .ffi import Dispatcher, load_builtins
from .formatting import format_program
from .interpreter import Machine, StepResult, DEFAULT_MAX_DEPTH


def _names_source_file(text: str) -> bool:
    return '\n' not in text and text.endswith(SOURCE_SUFFIX) and os.path.isfile(text)


class Runtime:
    """Minimal runtime facade focused on embedding and tooling."""

    def __init__(self, *, ffi: Dispatcher | None = None, rng: random.Random | None = None,
                 max_depth: int = DEFAULT_MAX_DEPTH, on_input_exhausted: str = 'error', search_paths=()):
        self.ffi = ffi or load_builtins(rng)
        self.max_depth = max_depth
        self.on_input_exhausted = on_input_exhausted
        self.search_paths = list(search_paths)

    # Parsing ─────────────────────────────────────────────────────────────────────────────────
    def parse_only(self, source: str, filename: str | None = None) -> Program:
        """Parse a single file's text without following its imports."""
        return parse(source, filename=filename)

    def validate(self, source: str, filename: str | None = None) -> list[SuiError]:
        return validate(source, filename=filename)

    def format(self, program: Program) -> str:
        return format_program(program)

    # Loading ─────────────────────────────────────────────────────────────────────────────────
    def load(self, source: str | os.PathLike, filename: str | None = None, base_dir=None) -> Program:
        """Resolve all imports into one program.

        A path-like, or a single-line string naming an existing `.sui` file, loads that file;
        any other string is source text.
        """
        resolver = ModuleResolver(self.search_paths)
        if isinstance(source, os.PathLike) or _names_source_file(source):
            return resolver.resolve(source)
        if base_dir is None and filename is not None:
            base_dir = os.path.dirname(os.path.abspath(filename))
        return resolver.resolve_source(source, filename=filename, base_dir=base_dir)

    def load_file(self, path: str | os.PathLike) -> Program:
        return ModuleResolver(self.search_paths).resolve(path)

    # Execution ───────────────────────────────────────────────────────────────────────────────
    def start(self, program: Program | str | os.PathLike, argv: Iterable[str] = (), *,
              input_source: Iterable[str] | None = None, filename: str | None = None,
              on_output: Callable[[str], None] | None = None) -> Machine:
        """Prepare a machine that a debugger or host can drive one `step()` at a time."""
        if not isinstance(program, Program):
            program = self.load(program, filename=filename)
        return Machine(program, argv, ffi=self.ffi, input_source=input_source, max_depth=self.max_depth,
                       on_input_exhausted=self.on_input_exhausted, on_output=on_output)

    def run(self, program: Program | str | os.PathLike, argv: Iterable[str] = (), *,
            input_source: Iterable[str] | None = None, filename: str | None = None,
            on_output: Callable[[str], None] | None = None, verbosity: int = 0,
            stats: dict | None = None, instruction_limit: int | None = None) -> list[str]:
        """Run a program, file path or source text to completion and return the output lines,
        or raise the first error.
        """
        machine = self.start(program, argv, input_source=input_source, filename=filename, on_output=on_output)
        return machine.run(verbosity=verbosity, stats=stats, instruction_limit=instruction_limit)

    def step(self, machine: Machine) -> StepResult:
        return machine.step()

    # Registration ────────────────────────────────────────────────────────────────────────────
    def register_function(self, name: str, func: Callable[..., Any]) -> None:
        self.ffi.add_function(name, func)

    # Introspection ───────────────────────────────────────────────────────────────────────────
    def get_signature(self, name: str) -> dict:
        return self.ffi.get_signature(name)

    def list_functions(self) -> dict[str, dict]:
        return self.ffi.list_functions()
