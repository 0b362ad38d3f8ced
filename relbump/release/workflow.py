"""Minor-release workflow.

The release is a fixed sequence of steps over one working tree:

    check -> fetch -> stash -> checkout -> fast-forward -> unstash
          -> commit -> compute tag -> create tag -> push -> checkout tag

Each step takes the ReleaseContext and the WorkflowState produced so far and
returns the next state or a ReleaseError. The first error ends the run;
nothing is retried or rolled back.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass, replace
from datetime import datetime
from pathlib import Path
from typing import Protocol

from relbump.core.config import ReleaseConfig
from relbump.core.result import Err, Ok, Result
from relbump.git.repository import GitError, GitStatus
from relbump.output.console import ConsoleProtocol
from relbump.release.errors import ReleaseError, ReleaseErrorKind
from relbump.release.semver import BASELINE_TAG, NextTag, resolve_next_tag
from relbump.release.steps import Step, StepFailure, run_steps

__all__ = [
    "GitRepository",
    "ReleaseContext",
    "ReleasePlan",
    "WorkflowState",
    "PLAN_STEPS",
    "RELEASE_STEPS",
    "plan_release",
    "preview_next_tag",
    "run_release",
]


class GitRepository(Protocol):
    """The git operations the workflow relies on (see relbump.git.Repository)."""

    path: Path

    def is_work_tree(self) -> Result[None, GitError]: ...
    def current_branch(self) -> str | None: ...
    def status(self) -> Result[GitStatus, GitError]: ...
    def ref_exists(self, ref: str) -> bool: ...
    def has_staged_changes(self) -> Result[bool, GitError]: ...
    def list_tags(self) -> Result[list[str], GitError]: ...
    def fetch(
        self, remote: str, *, tags: bool = True, prune: bool = True
    ) -> Result[str, GitError]: ...
    def stash_push(
        self, message: str, *, include_untracked: bool = True
    ) -> Result[str, GitError]: ...
    def stash_pop(self) -> Result[str, GitError]: ...
    def checkout(self, ref: str) -> Result[str, GitError]: ...
    def merge_ff_only(self, ref: str) -> Result[str, GitError]: ...
    def add_all(self) -> Result[str, GitError]: ...
    def commit(self, message: str) -> Result[str, GitError]: ...
    def create_annotated_tag(self, name: str, message: str) -> Result[str, GitError]: ...
    def push(self, remote: str, ref: str) -> Result[str, GitError]: ...


@dataclass(frozen=True, slots=True)
class ReleaseContext:
    repo: GitRepository
    config: ReleaseConfig
    console: ConsoleProtocol
    clock: Callable[[], datetime] = datetime.now


@dataclass(frozen=True, slots=True)
class WorkflowState:
    """What the run has done so far.

    Attributes:
        starting_branch: Branch checked out when the run began (None if detached)
        dirty: Working tree had tracked changes or untracked files
        made_stash: A stash entry was created and must be restored
        stash_label: Message of that stash entry
        restored_stash: The stash entry was popped back onto the release branch
        committed: Restored changes were committed on the release branch
        next_tag: Computed release tag
        tag_created: The annotated tag exists locally
        pushed_branch: Release branch reached the remote
        pushed_tag: Tag reached the remote
    """

    starting_branch: str | None = None
    dirty: bool = False
    made_stash: bool = False
    stash_label: str | None = None
    restored_stash: bool = False
    committed: bool = False
    next_tag: NextTag | None = None
    tag_created: bool = False
    pushed_branch: bool = False
    pushed_tag: bool = False


@dataclass(frozen=True, slots=True)
class ReleasePlan:
    remote: str
    branch: str
    starting_branch: str | None
    would_stash: bool
    next_tag: NextTag


type StepResult = Result[WorkflowState, ReleaseError]


def _fail(kind: ReleaseErrorKind, message: str, hint: str | None = None) -> Err[ReleaseError]:
    return Err(ReleaseError(kind=kind, message=message, hint=hint))


def _stash_reminder(state: WorkflowState) -> str | None:
    if not state.made_stash:
        return None
    return f"your local changes are stashed as '{state.stash_label}' (see `git stash list`)"


def _require_next_tag(state: WorkflowState) -> NextTag:
    if state.next_tag is None:
        raise AssertionError("release tag used before it was computed")
    return state.next_tag


# -----------------------------------------------------------------------------
# Steps
# -----------------------------------------------------------------------------


def check_repository(ctx: ReleaseContext, state: WorkflowState) -> StepResult:
    ctx.console.step("Ensuring we're in a Git repo...")
    checked = ctx.repo.is_work_tree()
    if isinstance(checked, Err):
        return _fail(
            "environment",
            f"{ctx.repo.path} is not a git working tree: {checked.error.message}",
            "run relbump from inside the repository to release",
        )

    branch = ctx.repo.current_branch()
    ctx.console.step(f"Current branch: {branch or 'DETACHED'}")
    return Ok(replace(state, starting_branch=branch))


def sync_remote(ctx: ReleaseContext, state: WorkflowState) -> StepResult:
    remote = ctx.config.remote
    ctx.console.step(f"Fetching latest from {remote} (including tags)...")
    fetched = ctx.repo.fetch(remote, tags=True, prune=True)
    if isinstance(fetched, Err):
        return _fail(
            "sync",
            f"could not fetch from '{remote}': {fetched.error.message}",
            f"check the remote name (GIT_REMOTE), network access and credentials for '{remote}'",
        )
    return Ok(state)


def inspect_changes(ctx: ReleaseContext, state: WorkflowState) -> StepResult:
    ctx.console.step("Checking for local modifications to stash...")
    status = ctx.repo.status()
    if isinstance(status, Err):
        return _fail("git", f"could not read working tree status: {status.error.message}")
    return Ok(replace(state, dirty=not status.value.is_clean))


def stash_changes(ctx: ReleaseContext, state: WorkflowState) -> StepResult:
    if not state.dirty:
        ctx.console.step("No changes to stash.")
        return Ok(replace(state, made_stash=False, stash_label=None))

    label = f"{ctx.config.stash_prefix} {ctx.clock():%Y-%m-%d %H:%M:%S}"
    stashed = ctx.repo.stash_push(label, include_untracked=True)
    if isinstance(stashed, Err):
        return _fail("git", f"could not stash local changes: {stashed.error.message}")

    ctx.console.step(f"Stashed changes: {label}")
    return Ok(replace(state, made_stash=True, stash_label=label))


def switch_branch(ctx: ReleaseContext, state: WorkflowState) -> StepResult:
    branch = ctx.config.branch
    ctx.console.step(f"Checking out {branch}...")
    switched = ctx.repo.checkout(branch)
    if isinstance(switched, Err):
        return _fail(
            "environment",
            f"could not check out '{branch}': {switched.error.message}",
            _stash_reminder(state) or "check the branch name (GIT_BRANCH)",
        )
    return Ok(state)


def fast_forward(ctx: ReleaseContext, state: WorkflowState) -> StepResult:
    remote, branch = ctx.config.remote, ctx.config.branch
    upstream = f"{remote}/{branch}"

    if not ctx.repo.ref_exists(f"refs/remotes/{remote}/{branch}"):
        return _fail(
            "environment",
            f"'{branch}' has no remote-tracking branch '{upstream}'",
            _stash_reminder(state) or f"push '{branch}' to '{remote}' once by hand, then re-run",
        )

    ctx.console.step(f"Fast-forwarding {branch} to {upstream}...")
    merged = ctx.repo.merge_ff_only(upstream)
    if isinstance(merged, Err):
        reminder = _stash_reminder(state)
        hint = "resolve manually (rebase or merge) and re-run"
        return _fail(
            "divergence",
            f"could not fast-forward {branch} to {upstream}: {merged.error.message}",
            f"{hint}; {reminder}" if reminder else hint,
        )
    return Ok(state)


def restore_stash(ctx: ReleaseContext, state: WorkflowState) -> StepResult:
    if not state.made_stash:
        ctx.console.step("No stash to pop.")
        return Ok(state)

    ctx.console.step(f"Popping the stash back onto {ctx.config.branch}...")
    popped = ctx.repo.stash_pop()
    if isinstance(popped, Err):
        return _fail(
            "stash_conflict",
            f"stash pop had conflicts: {popped.error.message}",
            f"resolve the conflicts, commit, then re-run; the entry '{state.stash_label}' "
            "is kept in `git stash list`",
        )
    return Ok(replace(state, restored_stash=True))


def commit_changes(ctx: ReleaseContext, state: WorkflowState) -> StepResult:
    ctx.console.step("Adding changes...")
    added = ctx.repo.add_all()
    if isinstance(added, Err):
        return _fail("git", f"could not stage changes: {added.error.message}")

    staged = ctx.repo.has_staged_changes()
    if isinstance(staged, Err):
        return _fail("git", f"could not inspect staged changes: {staged.error.message}")
    if not staged.value:
        ctx.console.step("No changes to commit.")
        return Ok(state)

    message = ctx.config.commit_message
    ctx.console.step(f'Committing: "{message}"')
    committed = ctx.repo.commit(message)
    if isinstance(committed, Err):
        return _fail("git", f"commit failed: {committed.error.message}")
    return Ok(replace(state, committed=True))


def compute_tag(ctx: ReleaseContext, state: WorkflowState) -> StepResult:
    ctx.console.step("Determining latest tag...")
    tags = ctx.repo.list_tags()
    if isinstance(tags, Err):
        return _fail("git", f"could not list tags: {tags.error.message}")

    resolved = resolve_next_tag(tags.value)
    if isinstance(resolved, Err):
        return resolved

    next_tag = resolved.value
    if next_tag.latest_is_baseline:
        ctx.console.step(f"No existing tags; defaulting to {BASELINE_TAG}")
    ctx.console.step(f"Latest tag found: {next_tag.latest}")
    ctx.console.step(f"New tag will be: {next_tag.tag}")
    return Ok(replace(state, next_tag=next_tag))


def create_tag(ctx: ReleaseContext, state: WorkflowState) -> StepResult:
    tag = _require_next_tag(state).tag
    if ctx.repo.ref_exists(f"refs/tags/{tag}"):
        return _fail(
            "tag_collision",
            f"tag '{tag}' already exists",
            f"inspect it with `git show {tag}`; relbump does not move or replace tags",
        )

    ctx.console.step(f"Creating annotated tag {tag}...")
    created = ctx.repo.create_annotated_tag(tag, f"Release {tag}")
    if isinstance(created, Err):
        return _fail("git", f"could not create tag '{tag}': {created.error.message}")
    return Ok(replace(state, tag_created=True))


def _push_retry_hint(ctx: ReleaseContext, tag: str) -> str:
    remote, branch = ctx.config.remote, ctx.config.branch
    return (
        f"the local commit and tag {tag} are kept; retry with "
        f"`git push {remote} {branch}` and `git push {remote} {tag}`"
    )


def push_branch(ctx: ReleaseContext, state: WorkflowState) -> StepResult:
    remote, branch = ctx.config.remote, ctx.config.branch
    tag = _require_next_tag(state).tag

    ctx.console.step(f"Pushing branch '{branch}' to {remote}...")
    pushed = ctx.repo.push(remote, branch)
    if isinstance(pushed, Err):
        return _fail(
            "push",
            f"push of '{branch}' to '{remote}' rejected: {pushed.error.message}",
            _push_retry_hint(ctx, tag),
        )
    return Ok(replace(state, pushed_branch=True))


def push_tag(ctx: ReleaseContext, state: WorkflowState) -> StepResult:
    remote = ctx.config.remote
    tag = _require_next_tag(state).tag

    ctx.console.step(f"Pushing tag '{tag}' to {remote}...")
    pushed = ctx.repo.push(remote, tag)
    if isinstance(pushed, Err):
        return _fail(
            "push",
            f"push of '{tag}' to '{remote}' rejected: {pushed.error.message}",
            _push_retry_hint(ctx, tag),
        )
    return Ok(replace(state, pushed_tag=True))


def checkout_tag(ctx: ReleaseContext, state: WorkflowState) -> StepResult:
    tag = _require_next_tag(state).tag
    if not ctx.config.checkout_tag:
        ctx.console.step(f"Leaving {ctx.config.branch} checked out.")
        return Ok(state)

    ctx.console.step(f"Checking out the new tag (detached HEAD): {tag}")
    switched = ctx.repo.checkout(tag)
    if isinstance(switched, Err):
        return _fail("git", f"could not check out '{tag}': {switched.error.message}")
    return Ok(state)


RELEASE_STEPS: Sequence[Step[ReleaseContext, WorkflowState]] = (
    Step("check", check_repository),
    Step("fetch", sync_remote),
    Step("inspect", inspect_changes),
    Step("stash", stash_changes),
    Step("checkout", switch_branch),
    Step("fast-forward", fast_forward),
    Step("unstash", restore_stash),
    Step("commit", commit_changes),
    Step("compute-tag", compute_tag),
    Step("tag", create_tag),
    Step("push-branch", push_branch),
    Step("push-tag", push_tag),
    Step("checkout-tag", checkout_tag),
)

PLAN_STEPS: Sequence[Step[ReleaseContext, WorkflowState]] = (
    Step("check", check_repository),
    Step("fetch", sync_remote),
    Step("inspect", inspect_changes),
    Step("compute-tag", compute_tag),
)


# -----------------------------------------------------------------------------
# Entry points
# -----------------------------------------------------------------------------


def run_release(ctx: ReleaseContext) -> Result[WorkflowState, StepFailure[WorkflowState]]:
    return run_steps(context=ctx, initial_state=WorkflowState(), steps=RELEASE_STEPS)


def plan_release(ctx: ReleaseContext) -> Result[ReleasePlan, StepFailure[WorkflowState]]:
    """Run only the read-only steps and describe what a release would do."""
    result = run_steps(context=ctx, initial_state=WorkflowState(), steps=PLAN_STEPS)
    if isinstance(result, Err):
        return result

    state = result.value
    return Ok(
        ReleasePlan(
            remote=ctx.config.remote,
            branch=ctx.config.branch,
            starting_branch=state.starting_branch,
            would_stash=state.dirty,
            next_tag=_require_next_tag(state),
        )
    )


def preview_next_tag(repo: GitRepository) -> Result[NextTag, ReleaseError]:
    """Compute the next tag from local tags only (no fetch, no changes)."""
    checked = repo.is_work_tree()
    if isinstance(checked, Err):
        return _fail(
            "environment", f"{repo.path} is not a git working tree: {checked.error.message}"
        )

    tags = repo.list_tags()
    if isinstance(tags, Err):
        return _fail("git", f"could not list tags: {tags.error.message}")
    return resolve_next_tag(tags.value)
