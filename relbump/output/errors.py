"""Error presentation utilities.

Centralized error formatting and exit code mapping for consistent UX.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, assert_never

from relbump.core.errors import ErrorCode
from relbump.output.console import Style
from relbump.release.errors import ReleaseError

if TYPE_CHECKING:
    from relbump.output.console import ConsoleProtocol
    from relbump.release.workflow import WorkflowState

__all__ = ["print_release_error", "release_error_exit_code", "print_partial_progress"]


def print_release_error(
    error: ReleaseError, console: ConsoleProtocol, *, step: str | None = None
) -> None:
    """Print a release error, its hint, and the step it came from."""
    prefix = f"{step}: " if step else ""
    console.error(f"{prefix}{error.message}")
    if error.hint:
        console.print(f"hint: {error.hint}", Style.DIM)


def print_partial_progress(state: WorkflowState, console: ConsoleProtocol) -> None:
    """Report side effects that already happened before a failure."""
    if state.made_stash and not state.restored_stash:
        console.warning(f"local changes may still be in the stash: {state.stash_label}")
    if state.committed:
        console.warning("a release commit was created locally")
    if state.tag_created and state.next_tag is not None:
        console.warning(f"tag {state.next_tag.tag} was created locally")
    if state.pushed_branch:
        console.warning("the release branch was already pushed")


def release_error_exit_code(error: ReleaseError) -> int:
    """Get exit code for a release error."""
    match error.kind:
        case "version_format" | "tag_collision":
            return int(ErrorCode.USER_ERROR)
        case "environment":
            return int(ErrorCode.ENV_ERROR)
        case "divergence" | "stash_conflict":
            return int(ErrorCode.CONFLICT_ERROR)
        case "sync" | "push":
            return int(ErrorCode.NETWORK_ERROR)
        case "git":
            return int(ErrorCode.GIT_ERROR)
        case unreachable:
            assert_never(unreachable)
