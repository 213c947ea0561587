## Copyright © 2025, Alex J. Champandard.  Licensed under AGPLv3; see LICENSE! ⚘
#
# suilang — An interpreter for Sui, a line-oriented register language with one instruction per line.
#

import sys
import time
from pathlib import Path
from dataclasses import dataclass

import click

from .errors import SuiError, SuiLexError, SuiParseError, SuiModuleError, SuiCyclicImport, SuiRuntimeError
from .parser import format_source_context
from .loader import read_source
from .formatting import write_without_ansi, format_call_stack
from .interpreter import DEFAULT_MAX_DEPTH
from .runtime import Runtime


@dataclass(frozen=True)
class RuntimeConfig:
    verbose: int
    plain: bool
    stats: bool
    max_depth: int


class SuiRunner:
    def __init__(self, config: RuntimeConfig):
        self.verbose = config.verbose
        self.stats_enabled = config.stats
        self.plain = config.plain

        if self.plain:
            writer = write_without_ansi(sys.stdout.write)
            sys.stdout.write, sys.stderr.write = writer, writer

        self.runtime = Runtime(max_depth=config.max_depth)
        self.total_stats = {'steps': 0, 'start': time.time()} if self.stats_enabled else None
        self.failure = False
        self.executed_items = 0

    def _report_error(self, message: str, detail: str, exc_type: str = None, context: str = '') -> None:
        header = detail if not exc_type else f"{detail} (Exception: \033[33m{exc_type}\033[0m)"
        print(f'\033[30;43m {message} \033[0m {header}\n{context}', file=sys.stderr)
        self.failure = True

    def _handle_exception(self, exc: SuiError, filename: str) -> None:
        where = f"`\033[97m{exc.filename or filename}\033[0m`"
        context = format_source_context(exc.filename or filename, exc.line)
        message = f"\n\033[90m{str(exc)}\033[0m\n"

        if isinstance(exc, (SuiLexError, SuiParseError)):
            self._report_error("SYNTAX ERROR.", f"Parsing {where} caused a problem!", exc.kind, context + message)
        elif isinstance(exc, SuiModuleError):
            if isinstance(exc, SuiCyclicImport):
                message += '\033[90m' + '\n'.join(f"    {p}" for p in exc.chain) + '\033[0m\n'
            self._report_error("IMPORT ERROR.", f"Resolving imports from {where} failed!", exc.kind, context + message)
        elif isinstance(exc, SuiRuntimeError):
            detail = f"Line \033[1;97m{exc.line}\033[0m of {where} caused an error in interpret!"
            self._report_error("RUNTIME ERROR.", detail, exc.kind, context + format_call_stack(exc.call_stack) + message)
        else:
            raise NotImplementedError(type(exc).__name__)

    def run_file(self, path: Path, argv: tuple[str, ...]) -> None:
        try:
            self.runtime.run(path, argv, input_source=sys.stdin, on_output=print,
                             verbosity=self.verbose, stats=self.total_stats)
        except SuiError as exc:
            self._handle_exception(exc, str(path))
        else:
            self.executed_items += 1

    def check_file(self, path: Path) -> None:
        try:
            source = read_source(path)
        except SuiError as exc:
            return self._handle_exception(exc, str(path))
        errors = self.runtime.validate(source, filename=str(path))
        try:
            if not errors:
                self.runtime.load_file(path)
        except SuiError as exc:
            errors.append(exc)
        for exc in errors:
            self._handle_exception(exc, str(path))
        if not errors:
            print(f"\033[32mOK.\033[0m {path}")
            self.executed_items += 1

    def finalize(self) -> int:
        if self.total_stats and self.executed_items > 0:
            elapsed_time = time.time() - self.total_stats['start']
            print(f"\n\033[97m\033[48;5;30m STATISTICS. \033[0m")
            print(f"step\t\033[97m{self.total_stats['steps']:,}\033[0m")
            print(f"time\t\033[97m{elapsed_time:.3f}s\033[0m")
        return 1 if self.failure else 0


@click.group()
@click.option('--verbose', '-v', default=0, count=True, help='Trace interpreter execution, twice for every step.')
@click.option('--stats', is_flag=True, help='Display execution statistics (e.g., number of steps).')
@click.option('--plain', '-p', is_flag=True, help='Strip ANSI color codes and redirect stderr to stdout.')
@click.option('--max-depth', default=DEFAULT_MAX_DEPTH, type=click.IntRange(min=1), show_default=True,
              help='Maximum number of active function calls.')
@click.pass_context
def cli(ctx: click.Context, verbose: int, stats: bool, plain: bool, max_depth: int) -> None:
    ctx.ensure_object(dict)
    ctx.obj['config'] = RuntimeConfig(verbose=verbose, plain=plain, stats=stats, max_depth=max_depth)


@cli.command('run', context_settings={'ignore_unknown_options': True})
@click.argument('script', type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument('runtime_args', nargs=-1, type=click.UNPROCESSED)
@click.pass_context
def run_file(ctx: click.Context, script: Path, runtime_args: tuple[str, ...]) -> None:
    """Execute SCRIPT; extra arguments are stored as strings from global g101 onwards."""
    runner = SuiRunner(ctx.obj['config'])
    runner.run_file(script, runtime_args)
    ctx.exit(runner.finalize())


@cli.command('check')
@click.argument('scripts', nargs=-1, required=True, type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.pass_context
def check_files(ctx: click.Context, scripts: tuple[Path, ...]) -> None:
    """Parse and resolve imports of each SCRIPT without running it."""
    runner = SuiRunner(ctx.obj['config'])
    for script in scripts:
        runner.check_file(script)
    ctx.exit(runner.finalize())


def main(argv: list[str] | None = None) -> None:
    a = list(sys.argv[1:] if argv is None else argv)
    # Skip global options, then default to `run` when the first word is not a command.
    i = 0
    while i < len(a) and a[i].startswith('-'):
        i += 2 if a[i] == '--max-depth' else 1
    if i < len(a) and a[i] not in cli.commands:
        a.insert(i, 'run')
    cli.main(args=a, prog_name='suilang')


if __name__ == "__main__":
    main()
