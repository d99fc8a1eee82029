"""Typer application entrypoint."""

from __future__ import annotations

import sys
from typing import List, NoReturn, Optional

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape

from compress.config import MAX_CORES, RunSettings
from compress.context import RunContext
from compress.engine import Dispatcher
from compress.errors import UsageError
from compress.models import STDIN, Mode
from logging_config import configure_logging


app = typer.Typer(
    help="Compress or uncompress FILEs (by default, compress FILEs in-place).",
    add_completion=False,
    context_settings={"help_option_names": ["-h", "--help"]},
)
err_console = Console(stderr=True)


def _usage_error(ctx: typer.Context, message: str) -> NoReturn:
    err_console.print(escape(ctx.get_usage()))
    err_console.print(f"[red]{escape(ctx.info_name or 'bzbatch')}: check args: {escape(message)}[/red]")
    raise typer.Exit(code=1)


def _validation_message(exc: ValidationError) -> str:
    first = exc.errors()[0]
    message = str(first.get("msg", exc)).removeprefix("Value error, ")
    location = ".".join(str(part) for part in first.get("loc", ()))
    return f"{location}: {message}" if location else message


def _check_ranges(level: int, cores: Optional[int]) -> None:
    if not 1 <= level <= 9:
        raise UsageError("invalid compression level: must be between 1 and 9")
    if cores is not None and not 1 <= cores <= MAX_CORES:
        raise UsageError("invalid number of cores")


def _pick_level(level: Optional[int], tiers: List[bool]) -> int:
    if level is not None:
        return level
    for value, selected in enumerate(tiers, start=1):
        if selected:
            return value
    return 9


@app.command()
def main(
    ctx: typer.Context,
    files: Optional[List[str]] = typer.Argument(None, help="Files to process. With no FILE, or when FILE is -, read standard input."),
    stdout: bool = typer.Option(False, "-c", "--stdout", help="write on standard output, keep original files unchanged"),
    decompress: bool = typer.Option(False, "-d", "--decompress", help="decompress; see also -c and -k"),
    force: bool = typer.Option(False, "-f", "--force", help="force overwrite of output file"),
    keep: bool = typer.Option(False, "-k", "--keep", help="keep original files unchanged"),
    recursive: bool = typer.Option(False, "-r", "--recursive", help="operate recursively on directories"),
    test: bool = typer.Option(False, "-t", "--test", help="test compressed file integrity"),
    verbose: bool = typer.Option(False, "-v", "--verbose", help="be verbose"),
    compress: bool = typer.Option(False, "-z", "--compress", help="compress file(s) (the default)"),
    small: bool = typer.Option(False, "-s", "--small", help="use less memory; accepted for backwards compatibility"),
    suffix: Optional[str] = typer.Option(None, "-S", "--suffix", help="use provided suffix on compressed files (default: bz2)"),
    level: Optional[int] = typer.Option(None, "-l", "--level", help="compression level (1 = fastest, 9 = best) (default: 9)"),
    cores: Optional[int] = typer.Option(None, "-cores", "--cores", help="number of cores to use for parallelization (default: all)"),
    fast: bool = typer.Option(False, "-1", "--fast", help="set block size to 100k"),
    level_2: bool = typer.Option(False, "-2", help="set block size to 200k"),
    level_3: bool = typer.Option(False, "-3", help="set block size to 300k"),
    level_4: bool = typer.Option(False, "-4", help="set block size to 400k"),
    level_5: bool = typer.Option(False, "-5", help="set block size to 500k"),
    level_6: bool = typer.Option(False, "-6", help="set block size to 600k"),
    level_7: bool = typer.Option(False, "-7", help="set block size to 700k"),
    level_8: bool = typer.Option(False, "-8", help="set block size to 800k"),
    best: bool = typer.Option(False, "-9", "--best", help="set block size to 900k (default)"),
) -> None:
    """Compress or uncompress FILEs in parallel, replacing each original."""

    configure_logging()

    chosen_level = _pick_level(
        level, [fast, level_2, level_3, level_4, level_5, level_6, level_7, level_8, best]
    )

    paths = list(files or [])
    if not paths:
        paths = [STDIN]
        # reading stdin with stdout redirected: behave like -c
        if not stdout and not sys.stdout.isatty():
            stdout = True

    if test:
        mode = Mode.TEST
    elif decompress:
        mode = Mode.DECOMPRESS
    else:
        mode = Mode.COMPRESS

    try:
        _check_ranges(chosen_level, cores)
        settings = RunSettings(
            mode=mode,
            to_stdout=stdout,
            force=force,
            keep=keep,
            recursive=recursive,
            verbose=verbose,
            suffix=suffix,
            level=chosen_level,
            cores=cores,
        )
    except ValidationError as exc:
        _usage_error(ctx, _validation_message(exc))
    except UsageError as exc:
        _usage_error(ctx, str(exc))

    context = RunContext()
    raise typer.Exit(code=Dispatcher(settings, context).run(paths))


if __name__ == "__main__":
    app()
