"""mathsyntax command line."""

from __future__ import annotations

from pathlib import Path

import click

from mathsyntax import __version__
from mathsyntax.config import CONFIG_NAME, find_config, load_config
from mathsyntax.errors import DiagnosticRenderer, MetaError, SourceReadError
from mathsyntax.grammar import default_grammar
from mathsyntax.project import scaffold
from mathsyntax.syntax import Syntax, parse_source, read_source
from mathsyntax.tokens import MetaKind, MetaToken

SOURCE_SUFFIX = ".sig"


def _collect_files(paths: tuple[str, ...]) -> list[Path]:
    """Expand directories to the source files below them, keeping order."""
    files: list[Path] = []
    for p in paths:
        path = Path(p)
        if path.is_dir():
            files.extend(sorted(path.rglob(f"*{SOURCE_SUFFIX}")))
        else:
            files.append(path)
    return files


def _report(error: MetaError | SourceReadError, *, color: bool) -> None:
    renderer = DiagnosticRenderer(color=color)
    if isinstance(error, MetaError):
        renderer.add_source(str(error.path), error.source)
    click.echo(renderer.render(error.to_diagnostic()), err=True)


@click.group()
@click.version_option(__version__, prog_name="mathsyntax")
def main() -> None:
    """Syntax checker for mathematical function signatures."""


@main.command()
@click.argument("paths", nargs=-1, type=click.Path(exists=True))
@click.option("--no-color", is_flag=True, help="Disable colored diagnostics.")
def check(paths: tuple[str, ...], no_color: bool) -> None:
    """Check source files (or the project's configured sources)."""
    color = not no_color
    if paths:
        files = _collect_files(paths)
    else:
        try:
            config = load_config(find_config(Path.cwd()))
        except FileNotFoundError:
            click.echo(f"error: no {CONFIG_NAME} found", err=True)
            raise SystemExit(1)
        click.echo(f"checking {config.package.name}...")
        files = config.source_files()
        color = color and config.output.color

    if not files:
        click.echo(f"warning: no {SOURCE_SUFFIX} files found", err=True)
        return

    try:
        syntax = Syntax.new(files)
    except (MetaError, SourceReadError) as e:
        _report(e, color=color)
        raise SystemExit(1)

    click.echo(f"checked {len(syntax.files)} file(s), no errors")


@main.command()
@click.argument("name")
def new(name: str) -> None:
    """Create a new project."""
    try:
        project_dir = scaffold(name)
        click.echo(f"created project '{name}' at {project_dir}")
    except FileExistsError as e:
        click.echo(f"error: {e}", err=True)
        raise SystemExit(1)


@main.command()
def rules() -> None:
    """List the grammar's named rules."""
    for name in default_grammar().table.names():
        click.echo(name)


@main.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.option("--no-color", is_flag=True, help="Disable colored diagnostics.")
def view(file: str, no_color: bool) -> None:
    """Show the nodes and properties matched in a source file."""
    path = Path(file)
    try:
        source = read_source(path)
    except SourceReadError as e:
        _report(e, color=not no_color)
        raise SystemExit(1)

    outcome = parse_source(source)
    error = outcome.failure
    if error is not None:
        _report(MetaError(path, source, error.range, error), color=not no_color)
        raise SystemExit(1)

    _dump_tokens(outcome.tokens)


def _dump_tokens(tokens: list[MetaToken]) -> None:
    """Print the token log as an indented tree."""
    depth = 0
    for token in tokens:
        if token.kind == MetaKind.END_NODE:
            depth -= 1
            continue
        click.echo(f"{'  ' * depth}{token}")
        if token.kind == MetaKind.START_NODE:
            depth += 1


@main.command()
def lsp() -> None:
    """Start the language server."""
    from mathsyntax.lsp import main as lsp_main

    lsp_main()
