"""
`nyas` command line.

    nyas run FILE [--strict] [--quiet] [--filename NAME]
    nyas check FILE [--strict] [--ir]
    nyas tokens FILE

Author: xwest
"""

import logging
import sys

import click

from . import __version__
from .config import CompilerOptions, RuntimeOptions
from .diagnostics import configure_logging, describe_code, summarize_codes
from .parser import ParseError
from .pipeline import scan, compile_source
from .runtime import Interpreter, NyaRuntimeError, default_registry


EXIT_OK = 0
EXIT_COMPILE_ERROR = 1
EXIT_RUNTIME_ERROR = 2


def _read_source(path: str) -> str:
    with open(path, "r", encoding="utf-8") as f:
        return f.read()


def _compiler_options(path: str, strict: bool, filename: str = None) -> CompilerOptions:
    options = CompilerOptions.from_env(filename or path)
    if strict:
        options.strict = True
    return options


@click.group()
@click.version_option(__version__, prog_name="nyas")
@click.option("-v", "--verbose", is_flag=True, help="Show debug diagnostics.")
def main(verbose):
    """NyaScript interpreter."""
    configure_logging(logging.DEBUG if verbose else logging.INFO)


@main.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.option("--strict", is_flag=True, help="Abort on the first parse error.")
@click.option("--quiet", is_flag=True, help="Only print the script's own output.")
@click.option("--filename", default=None, help="Name shown in diagnostics.")
@click.pass_context
def run(ctx, file, strict, quiet, filename):
    """Compile and run FILE."""
    options = _compiler_options(file, strict, filename)
    runtime_options = RuntimeOptions(echo_exit_code=not quiet)
    natives = default_registry()

    def status(message: str):
        if not quiet:
            click.echo(message)

    status("Scanning...")
    source = _read_source(file)
    status("Parsing...")
    try:
        result = compile_source(source, options, natives)
    except ParseError as e:
        click.echo(str(e), err=True)
        code = EXIT_COMPILE_ERROR
    else:
        if not result.ok:
            code = EXIT_COMPILE_ERROR
        else:
            code = EXIT_OK
            try:
                Interpreter(runtime_options, natives).run(result.program)
            except NyaRuntimeError as e:
                click.echo(str(e), err=True)
                click.echo(f"  {e.code}: {describe_code(e.code)}", err=True)
                code = EXIT_RUNTIME_ERROR
            sys.stdout.flush()

    if runtime_options.echo_exit_code:
        click.echo(f"Script exit with code {code}")
    ctx.exit(code)


@main.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.option("--strict", is_flag=True, help="Stop at the first parse error.")
@click.option("--ir", "show_ir", is_flag=True, help="Print the compiled program.")
@click.pass_context
def check(ctx, file, strict, show_ir):
    """Scan and compile FILE without running it."""
    options = _compiler_options(file, strict)
    try:
        result = compile_source(_read_source(file), options)
    except ParseError as e:
        click.echo(str(e), err=True)
        ctx.exit(EXIT_COMPILE_ERROR)

    if show_ir:
        click.echo(str(result.program))

    count = len(result.errors) + len(result.lex_errors)
    if count:
        click.echo(f"Found {count} error(s).")
        for line in summarize_codes(result.lex_errors + result.errors):
            click.echo(f"  {line}")
        ctx.exit(EXIT_COMPILE_ERROR)
    click.echo("No errors found.")


@main.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
def tokens(file):
    """Dump the token stream of FILE."""
    token_list, _ = scan(_read_source(file), file)
    for token in token_list:
        location = token.location
        click.echo(f"{location.line}:{location.column}\t{token.type.name}\t{token.lexeme!r}")


if __name__ == "__main__":
    main()
