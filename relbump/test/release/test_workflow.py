"""Tests for the release workflow against a scripted repository."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

from relbump.core.config import ReleaseConfig
from relbump.core.result import Err, Ok, Result
from relbump.git.repository import GitError, GitStatus, StatusEntry
from relbump.output.console import MockConsole
from relbump.release.workflow import (
    ReleaseContext,
    WorkflowState,
    plan_release,
    preview_next_tag,
    run_release,
)


def _no_failures() -> dict[str, GitError]:
    return {}


def _no_calls() -> list[tuple[str, ...]]:
    return []


def _tags() -> list[str]:
    return ["v1.0.0", "v1.1.0"]


def _refs() -> set[str]:
    return {"refs/remotes/origin/main"}


@dataclass
class FakeRepository:
    """In-memory stand-in for relbump.git.Repository.

    `fail` maps an operation name to the GitError it returns. Every call is
    recorded in `calls` so tests can assert ordering.
    """

    path: Path = Path("/work/project")
    branch: str | None = "feature"
    entries: tuple[StatusEntry, ...] = ()
    staged: bool = False
    tags: list[str] = field(default_factory=_tags)
    refs: set[str] = field(default_factory=_refs)
    fail: dict[str, GitError] = field(default_factory=_no_failures)
    calls: list[tuple[str, ...]] = field(default_factory=_no_calls)

    def _result(self, op: str, *args: str) -> Result[str, GitError]:
        self.calls.append((op, *args))
        if op in self.fail:
            return Err(self.fail[op])
        return Ok("")

    @property
    def ops(self) -> list[str]:
        return [c[0] for c in self.calls]

    def is_work_tree(self) -> Result[None, GitError]:
        self.calls.append(("is_work_tree",))
        if "is_work_tree" in self.fail:
            return Err(self.fail["is_work_tree"])
        return Ok(None)

    def current_branch(self) -> str | None:
        return self.branch

    def status(self) -> Result[GitStatus, GitError]:
        self.calls.append(("status",))
        if "status" in self.fail:
            return Err(self.fail["status"])
        return Ok(GitStatus(branch=self.branch or "HEAD", entries=self.entries))

    def ref_exists(self, ref: str) -> bool:
        return ref in self.refs

    def has_staged_changes(self) -> Result[bool, GitError]:
        self.calls.append(("has_staged_changes",))
        return Ok(self.staged)

    def list_tags(self) -> Result[list[str], GitError]:
        self.calls.append(("list_tags",))
        return Ok(list(self.tags))

    def fetch(self, remote: str, *, tags: bool = True, prune: bool = True) -> Result[str, GitError]:
        return self._result("fetch", remote)

    def stash_push(self, message: str, *, include_untracked: bool = True) -> Result[str, GitError]:
        return self._result("stash_push", message)

    def stash_pop(self) -> Result[str, GitError]:
        return self._result("stash_pop")

    def checkout(self, ref: str) -> Result[str, GitError]:
        return self._result("checkout", ref)

    def merge_ff_only(self, ref: str) -> Result[str, GitError]:
        return self._result("merge_ff_only", ref)

    def add_all(self) -> Result[str, GitError]:
        return self._result("add_all")

    def commit(self, message: str) -> Result[str, GitError]:
        return self._result("commit", message)

    def create_annotated_tag(self, name: str, message: str) -> Result[str, GitError]:
        result = self._result("create_annotated_tag", name, message)
        if isinstance(result, Ok):
            self.tags.append(name)
            self.refs.add(f"refs/tags/{name}")
        return result

    def push(self, remote: str, ref: str) -> Result[str, GitError]:
        if f"push:{ref}" in self.fail:
            self.calls.append(("push", remote, ref))
            return Err(self.fail[f"push:{ref}"])
        return self._result("push", remote, ref)


DIRTY = (StatusEntry(xy=" M", path="hello.txt"), StatusEntry(xy="??", path="notes.txt"))


def _ctx(
    repo: FakeRepository, config: ReleaseConfig | None = None
) -> tuple[ReleaseContext, MockConsole]:
    console = MockConsole()
    ctx = ReleaseContext(
        repo=repo,
        config=config or ReleaseConfig(),
        console=console,
        clock=lambda: datetime(2024, 5, 1, 10, 30, 0),
    )
    return ctx, console


# =============================================================================
# Happy paths
# =============================================================================


def test_clean_tree_release_sequence() -> None:
    repo = FakeRepository()
    ctx, console = _ctx(repo)

    result = run_release(ctx)

    assert isinstance(result, Ok)
    state = result.value
    assert state.starting_branch == "feature"
    assert state.made_stash is False
    assert state.committed is False
    assert state.next_tag is not None and state.next_tag.tag == "v1.2.0"
    assert state.tag_created and state.pushed_branch and state.pushed_tag

    assert repo.calls == [
        ("is_work_tree",),
        ("fetch", "origin"),
        ("status",),
        ("checkout", "main"),
        ("merge_ff_only", "origin/main"),
        ("add_all",),
        ("has_staged_changes",),
        ("list_tags",),
        ("create_annotated_tag", "v1.2.0", "Release v1.2.0"),
        ("push", "origin", "main"),
        ("push", "origin", "v1.2.0"),
        ("checkout", "v1.2.0"),
    ]
    assert "No changes to stash." in console.steps
    assert "No stash to pop." in console.steps
    assert "No changes to commit." in console.steps


def test_dirty_tree_stashes_before_checkout_and_pops_before_commit() -> None:
    repo = FakeRepository(entries=DIRTY, staged=True)
    ctx, console = _ctx(repo)

    result = run_release(ctx)

    assert isinstance(result, Ok)
    assert result.value.made_stash is True
    assert result.value.restored_stash is True
    assert result.value.committed is True
    assert result.value.stash_label == "auto-stash 2024-05-01 10:30:00"

    ops = repo.ops
    assert ops.index("stash_push") < ops.index("checkout")
    assert ops.index("merge_ff_only") < ops.index("stash_pop") < ops.index("add_all")
    assert ("stash_push", "auto-stash 2024-05-01 10:30:00") in repo.calls
    assert ("commit", "updated submodule") in repo.calls
    assert "Stashed changes: auto-stash 2024-05-01 10:30:00" in console.steps
    assert 'Committing: "updated submodule"' in console.steps


def test_restored_tree_identical_to_head_is_not_committed() -> None:
    repo = FakeRepository(entries=DIRTY, staged=False)
    ctx, _ = _ctx(repo)

    result = run_release(ctx)

    assert isinstance(result, Ok)
    assert result.value.committed is False
    assert "commit" not in repo.ops


def test_no_tags_releases_v0_1_0() -> None:
    repo = FakeRepository(tags=[])
    ctx, console = _ctx(repo)

    result = run_release(ctx)

    assert isinstance(result, Ok)
    assert result.value.next_tag is not None
    assert result.value.next_tag.tag == "v0.1.0"
    assert "No existing tags; defaulting to v0.0.0" in console.steps


def test_custom_remote_branch_and_message() -> None:
    repo = FakeRepository(entries=DIRTY, staged=True, refs={"refs/remotes/upstream/master"})
    config = ReleaseConfig(remote="upstream", branch="master", commit_message="bump")
    ctx, _ = _ctx(repo, config)

    result = run_release(ctx)

    assert isinstance(result, Ok)
    assert ("fetch", "upstream") in repo.calls
    assert ("checkout", "master") in repo.calls
    assert ("merge_ff_only", "upstream/master") in repo.calls
    assert ("commit", "bump") in repo.calls
    assert ("push", "upstream", "master") in repo.calls


def test_no_checkout_leaves_branch_checked_out() -> None:
    repo = FakeRepository()
    ctx, console = _ctx(repo, ReleaseConfig(checkout_tag=False))

    result = run_release(ctx)

    assert isinstance(result, Ok)
    assert ("checkout", "v1.2.0") not in repo.calls
    assert "Leaving main checked out." in console.steps


def test_detached_head_is_reported() -> None:
    repo = FakeRepository(branch=None)
    ctx, console = _ctx(repo)

    run_release(ctx)

    assert "Current branch: DETACHED" in console.steps


# =============================================================================
# Failure paths
# =============================================================================


def test_not_a_repository() -> None:
    repo = FakeRepository(fail={"is_work_tree": GitError("rev-parse", "fatal: not a git repository")})
    ctx, _ = _ctx(repo)

    result = run_release(ctx)

    assert isinstance(result, Err)
    assert result.error.step == "check"
    assert result.error.error.kind == "environment"
    assert repo.ops == ["is_work_tree"]


def test_fetch_failure_is_sync_error() -> None:
    repo = FakeRepository(fail={"fetch": GitError("fetch", "Could not resolve host")})
    ctx, _ = _ctx(repo)

    result = run_release(ctx)

    assert isinstance(result, Err)
    assert result.error.error.kind == "sync"
    assert "Could not resolve host" in result.error.error.message
    assert "stash_push" not in repo.ops


def test_missing_branch_is_environment_error_and_mentions_stash() -> None:
    repo = FakeRepository(
        entries=DIRTY,
        fail={"checkout": GitError("checkout", "pathspec 'main' did not match")},
    )
    ctx, _ = _ctx(repo)

    result = run_release(ctx)

    assert isinstance(result, Err)
    failure = result.error
    assert failure.step == "checkout"
    assert failure.error.kind == "environment"
    assert failure.error.hint is not None
    assert "auto-stash 2024-05-01 10:30:00" in failure.error.hint
    assert failure.state.made_stash is True


def test_missing_remote_tracking_branch_is_environment_error() -> None:
    repo = FakeRepository(refs=set())
    ctx, _ = _ctx(repo)

    result = run_release(ctx)

    assert isinstance(result, Err)
    assert result.error.step == "fast-forward"
    assert result.error.error.kind == "environment"
    assert "origin/main" in result.error.error.message
    assert "merge_ff_only" not in repo.ops


def test_divergence_aborts_before_unstash() -> None:
    repo = FakeRepository(
        entries=DIRTY,
        fail={"merge_ff_only": GitError("merge --ff-only", "Not possible to fast-forward")},
    )
    ctx, _ = _ctx(repo)

    result = run_release(ctx)

    assert isinstance(result, Err)
    assert result.error.error.kind == "divergence"
    assert result.error.error.hint is not None
    assert "re-run" in result.error.error.hint
    assert "stash_pop" not in repo.ops
    assert "create_annotated_tag" not in repo.ops


def test_stash_conflict_keeps_stash_and_stops() -> None:
    repo = FakeRepository(
        entries=DIRTY,
        fail={"stash_pop": GitError("stash pop", "CONFLICT (content): Merge conflict in hello.txt")},
    )
    ctx, _ = _ctx(repo)

    result = run_release(ctx)

    assert isinstance(result, Err)
    failure = result.error
    assert failure.step == "unstash"
    assert failure.error.kind == "stash_conflict"
    assert failure.error.hint is not None
    assert "git stash list" in failure.error.hint
    assert failure.state.restored_stash is False
    assert "add_all" not in repo.ops


def test_malformed_latest_tag_stops_before_tag_and_push() -> None:
    repo = FakeRepository(tags=["v1.0.0", "v1.2"])
    ctx, _ = _ctx(repo)

    result = run_release(ctx)

    assert isinstance(result, Err)
    assert result.error.step == "compute-tag"
    assert result.error.error.kind == "version_format"
    assert "create_annotated_tag" not in repo.ops
    assert "push" not in repo.ops


def test_existing_tag_is_collision() -> None:
    repo = FakeRepository(refs={"refs/remotes/origin/main", "refs/tags/v1.2.0"})
    ctx, _ = _ctx(repo)

    result = run_release(ctx)

    assert isinstance(result, Err)
    assert result.error.step == "tag"
    assert result.error.error.kind == "tag_collision"
    assert "create_annotated_tag" not in repo.ops


def test_branch_push_failure_keeps_local_tag() -> None:
    repo = FakeRepository(fail={"push:main": GitError("push", "! [rejected] main -> main")})
    ctx, _ = _ctx(repo)

    result = run_release(ctx)

    assert isinstance(result, Err)
    failure = result.error
    assert failure.step == "push-branch"
    assert failure.error.kind == "push"
    assert failure.state.tag_created is True
    assert "v1.2.0" in repo.tags
    assert ("push", "origin", "v1.2.0") not in repo.calls
    assert ("checkout", "v1.2.0") not in repo.calls


def test_tag_push_failure_records_branch_push() -> None:
    repo = FakeRepository(fail={"push:v1.2.0": GitError("push", "permission denied")})
    ctx, _ = _ctx(repo)

    result = run_release(ctx)

    assert isinstance(result, Err)
    failure = result.error
    assert failure.step == "push-tag"
    assert failure.state.pushed_branch is True
    assert failure.error.hint is not None
    assert "git push origin v1.2.0" in failure.error.hint


def test_failed_commit_is_git_error() -> None:
    repo = FakeRepository(
        entries=DIRTY, staged=True, fail={"commit": GitError("commit", "Please tell me who you are")}
    )
    ctx, _ = _ctx(repo)

    result = run_release(ctx)

    assert isinstance(result, Err)
    assert result.error.error.kind == "git"
    assert result.error.state.restored_stash is True


# =============================================================================
# Dry run / preview
# =============================================================================


def test_plan_release_makes_no_changes() -> None:
    repo = FakeRepository(entries=DIRTY)
    ctx, _ = _ctx(repo)

    result = plan_release(ctx)

    assert isinstance(result, Ok)
    plan = result.value
    assert plan.would_stash is True
    assert plan.next_tag.tag == "v1.2.0"
    assert plan.starting_branch == "feature"
    assert repo.ops == ["is_work_tree", "fetch", "status", "list_tags"]


def test_plan_release_reports_malformed_tag() -> None:
    repo = FakeRepository(tags=["1.2.3-rc1"])
    ctx, _ = _ctx(repo)

    result = plan_release(ctx)

    assert isinstance(result, Err)
    assert result.error.error.kind == "version_format"


def test_preview_next_tag_uses_local_tags_only() -> None:
    repo = FakeRepository(tags=["v1.9.0", "v1.10.0"])

    result = preview_next_tag(repo)

    assert isinstance(result, Ok)
    assert result.value.tag == "v1.11.0"
    assert "fetch" not in repo.ops


def test_preview_next_tag_outside_repository() -> None:
    repo = FakeRepository(fail={"is_work_tree": GitError("rev-parse", "not a git repository")})

    result = preview_next_tag(repo)

    assert isinstance(result, Err)
    assert result.error.kind == "environment"


def test_initial_state_is_empty() -> None:
    state = WorkflowState()
    assert state.made_stash is False
    assert state.next_tag is None
