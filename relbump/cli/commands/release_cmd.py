"""Release command - stash, fast-forward, commit, tag and push."""

from __future__ import annotations

from pathlib import Path

import typer

from relbump.cli.context import build_context
from relbump.core.errors import ErrorCode
from relbump.core.result import Err, Ok
from relbump.output.console import Style
from relbump.output.errors import (
    print_partial_progress,
    print_release_error,
    release_error_exit_code,
)
from relbump.release.workflow import ReleaseContext, plan_release, run_release


def release(
    remote: str | None = typer.Option(
        None, "--remote", help="Remote to fetch from and push to (default: $GIT_REMOTE or origin)"
    ),
    branch: str | None = typer.Option(
        None, "--branch", help="Release branch (default: $GIT_BRANCH or main)"
    ),
    message: str | None = typer.Option(
        None, "--message", "-m", help="Commit message for local changes"
    ),
    checkout: bool = typer.Option(
        True, "--checkout/--no-checkout", help="Check out the new tag when done"
    ),
    dry_run: bool = typer.Option(False, "--dry-run", help="Show the plan without modifying"),
    repo: Path | None = typer.Option(None, "--repo", help="Repository path (default: cwd)"),
) -> None:
    """Cut the next minor release (vX.Y+1.0) from the release branch."""
    ctx = build_context(repo)

    config = ctx.config.with_overrides(
        remote=remote,
        branch=branch,
        commit_message=message,
        checkout_tag=checkout,
    )
    if isinstance(config, Err):
        ctx.console.error(config.error.message)
        raise typer.Exit(code=int(ErrorCode.USER_ERROR))

    release_ctx = ReleaseContext(repo=ctx.repo, config=config.value, console=ctx.console)

    if dry_run:
        planned = plan_release(release_ctx)
        match planned:
            case Err(failure):
                print_release_error(failure.error, ctx.console, step=failure.step)
                raise typer.Exit(code=release_error_exit_code(failure.error))
            case Ok(plan):
                ctx.console.print("")
                ctx.console.print(f"dry-run: would release {plan.next_tag.tag}", Style.DIM)
                if plan.would_stash:
                    ctx.console.print("dry-run: local changes would be stashed", Style.DIM)
                ctx.console.print(
                    f"dry-run: would push {plan.branch} and {plan.next_tag.tag} to {plan.remote}",
                    Style.DIM,
                )
        return

    result = run_release(release_ctx)
    match result:
        case Err(failure):
            print_release_error(failure.error, ctx.console, step=failure.step)
            print_partial_progress(failure.state, ctx.console)
            raise typer.Exit(code=release_error_exit_code(failure.error))
        case Ok(state):
            tag = state.next_tag.tag if state.next_tag else "?"
            ctx.console.success(f"Released {tag}")
