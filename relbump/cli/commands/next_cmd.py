from __future__ import annotations

from pathlib import Path

import typer

from relbump.cli.context import build_context
from relbump.core.result import Err, Ok
from relbump.output.errors import print_release_error, release_error_exit_code
from relbump.release.workflow import preview_next_tag


def next_tag(
    repo: Path | None = typer.Option(None, "--repo", help="Repository path (default: cwd)"),
) -> None:
    """Print the tag the next release would create (local tags only)."""
    ctx = build_context(repo)

    match preview_next_tag(ctx.repo):
        case Err(e):
            print_release_error(e, ctx.console)
            raise typer.Exit(code=release_error_exit_code(e))
        case Ok(resolved):
            typer.echo(resolved.tag)
