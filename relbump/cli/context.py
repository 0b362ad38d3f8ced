from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

import typer

from relbump.core.config import ReleaseConfig, load_config
from relbump.core.errors import ErrorCode
from relbump.core.result import Err
from relbump.git.repository import Repository
from relbump.output.console import ConsoleProtocol, RichConsole


@dataclass(frozen=True, slots=True)
class CLIContext:
    repo: Repository
    config: ReleaseConfig
    console: ConsoleProtocol


def build_context(repo_path: Path | None = None) -> CLIContext:
    config_result = load_config(os.environ)
    if isinstance(config_result, Err):
        typer.echo(f"error: {config_result.error.message}", err=True)
        raise typer.Exit(code=int(ErrorCode.USER_ERROR))

    path = (repo_path or Path.cwd()).expanduser()
    if not path.is_dir():
        typer.echo(f"error: --repo '{path}' is not a directory", err=True)
        raise typer.Exit(code=int(ErrorCode.ENV_ERROR))

    return CLIContext(
        repo=Repository(path),
        config=config_result.value,
        console=RichConsole(),
    )
