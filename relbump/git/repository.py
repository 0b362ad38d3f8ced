"""Git repository abstraction.

This module provides the Repository class wrapping every git primitive the
release workflow needs. All operations return Result types; nothing here
raises on a failing git command.

Usage:
    repo = Repository(Path("/path/to/repo"))

    match repo.status():
        case Ok(status):
            if not status.is_clean:
                repo.stash_push("auto-stash 2024-01-01 10:00:00")
        case Err(e):
            print(f"Error: {e.message}")

    match repo.merge_ff_only("origin/main"):
        case Ok(_):
            print("fast-forwarded")
        case Err(e):
            print(f"cannot fast-forward: {e.message}")
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from relbump.core.result import Err, Ok, Result
from relbump.platform.process import ProcessError
from relbump.platform.process import run as run_process

_GIT_TIMEOUT_SECONDS = 30.0
_GIT_NETWORK_TIMEOUT_SECONDS = 3 * 60.0
_NETWORK_COMMANDS = frozenset({"fetch", "pull", "push"})

__all__ = [
    "GitError",
    "GitStatus",
    "Repository",
    "StatusEntry",
]


@dataclass(frozen=True, slots=True)
class GitError:
    """Error from a git operation.

    Attributes:
        command: The git command that failed (e.g. "stash pop")
        message: Error message, usually git's own stderr
        returncode: Process return code
    """

    command: str
    message: str
    returncode: int = 1


@dataclass(frozen=True, slots=True)
class StatusEntry:
    """A single entry in git status.

    Attributes:
        xy: Two-character status code (e.g., "M ", " M", "??")
        path: File path
    """

    xy: str
    path: str


@dataclass(frozen=True, slots=True)
class GitStatus:
    """Parsed `git status --porcelain=v1 -b` output.

    Attributes:
        branch: Current branch name as reported on the "##" line
        entries: All status entries (staged, unstaged, untracked)
    """

    branch: str
    entries: tuple[StatusEntry, ...] = field(default_factory=tuple)

    @property
    def is_clean(self) -> bool:
        """True if there are no tracked modifications and no untracked files."""
        return len(self.entries) == 0


class Repository:
    """Git working tree at a given path.

    Attributes:
        path: Directory git commands run in (any directory inside the work tree)
    """

    def __init__(self, path: Path) -> None:
        self.path = path

    # -------------------------------------------------------------------------
    # Inspection
    # -------------------------------------------------------------------------

    def is_work_tree(self) -> Result[None, GitError]:
        """Check that path is inside a git working tree."""
        result = self._run(["rev-parse", "--is-inside-work-tree"])
        match result:
            case Err(e):
                return Err(_git_error("rev-parse", e, "not a git repository"))
            case Ok(stdout):
                if stdout.strip() != "true":
                    return Err(GitError("rev-parse", "not inside a git working tree"))
                return Ok(None)

    def current_branch(self) -> str | None:
        """Get current branch name.

        Returns None on detached HEAD or error.
        """
        result = self._run(["symbolic-ref", "--short", "-q", "HEAD"])
        match result:
            case Ok(stdout):
                return stdout.strip() or None
            case Err(_):
                return None

    def status(self) -> Result[GitStatus, GitError]:
        """Get working tree status (tracked changes and untracked files)."""
        result = self._run(["status", "--porcelain=v1", "-b"])
        match result:
            case Err(e):
                return Err(_git_error("status", e, "git status failed"))
            case Ok(stdout):
                return Ok(self._parse_status(stdout))

    def ref_exists(self, ref: str) -> bool:
        """Check whether ref resolves (e.g. "refs/tags/v1.2.0")."""
        result = self._run(["rev-parse", "--verify", "--quiet", ref])
        return isinstance(result, Ok)

    def has_staged_changes(self) -> Result[bool, GitError]:
        """Check whether the index differs from HEAD.

        `git diff --cached --quiet` exits 1 when there are differences, which
        is an answer rather than a failure.
        """
        result = self._run(["diff", "--cached", "--quiet"])
        match result:
            case Ok(_):
                return Ok(False)
            case Err(e):
                if e.returncode == 1:
                    return Ok(True)
                return Err(_git_error("diff --cached", e, "git diff failed"))

    def list_tags(self) -> Result[list[str], GitError]:
        """List all tag names."""
        result = self._run(["tag", "--list"])
        match result:
            case Err(e):
                return Err(_git_error("tag --list", e, "git tag failed"))
            case Ok(stdout):
                return Ok([ln.strip() for ln in stdout.splitlines() if ln.strip()])

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    def fetch(self, remote: str, *, tags: bool = True, prune: bool = True) -> Result[str, GitError]:
        """Fetch refs (and by default tags) from remote."""
        args = ["fetch", remote]
        if tags:
            args.append("--tags")
        if prune:
            args.append("--prune")
        return self._simple(args, "fetch", "fetch failed")

    def stash_push(self, message: str, *, include_untracked: bool = True) -> Result[str, GitError]:
        """Stash working tree changes under a label."""
        args = ["stash", "push"]
        if include_untracked:
            args.append("-u")
        args += ["-m", message]
        return self._simple(args, "stash push", "stash failed")

    def stash_pop(self) -> Result[str, GitError]:
        """Restore the most recent stash entry.

        On conflict git keeps the entry in the stash list.
        """
        return self._simple(["stash", "pop"], "stash pop", "stash pop failed")

    def checkout(self, ref: str) -> Result[str, GitError]:
        return self._simple(["checkout", ref], "checkout", f"checkout {ref} failed")

    def merge_ff_only(self, ref: str) -> Result[str, GitError]:
        """Advance the current branch to ref, only if that is a fast-forward."""
        return self._simple(
            ["merge", "--ff-only", ref], "merge --ff-only", "not possible to fast-forward"
        )

    def add_all(self) -> Result[str, GitError]:
        return self._simple(["add", "-A"], "add", "git add failed")

    def commit(self, message: str) -> Result[str, GitError]:
        return self._simple(["commit", "-m", message], "commit", "git commit failed")

    def create_annotated_tag(self, name: str, message: str) -> Result[str, GitError]:
        return self._simple(["tag", "-a", name, "-m", message], "tag", f"could not create {name}")

    def push(self, remote: str, ref: str) -> Result[str, GitError]:
        return self._simple(["push", remote, ref], "push", f"push {ref} to {remote} failed")

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _simple(self, args: list[str], command: str, fallback: str) -> Result[str, GitError]:
        result = self._run(args)
        match result:
            case Err(e):
                return Err(_git_error(command, e, fallback))
            case Ok(stdout):
                return Ok(stdout.strip())

    def _run(self, args: list[str]) -> Result[str, ProcessError]:
        """Run a git command in this repository."""
        command = args[0] if args else ""
        if command in _NETWORK_COMMANDS:
            timeout = _GIT_NETWORK_TIMEOUT_SECONDS
        else:
            timeout = _GIT_TIMEOUT_SECONDS
        return run_process(["git", *args], cwd=self.path, timeout=timeout)

    def _parse_status(self, output: str) -> GitStatus:
        """Parse git status --porcelain=v1 -b output."""
        lines = [ln for ln in output.splitlines() if ln.strip()]

        if not lines:
            return GitStatus(branch="")

        # First line is branch info: ## branch...upstream [ahead N, behind M]
        branch = self._parse_branch_line(lines[0])

        entries: list[StatusEntry] = []
        for line in lines[1:]:
            entry = self._parse_entry(line)
            if entry:
                entries.append(entry)

        return GitStatus(branch=branch, entries=tuple(entries))

    def _parse_branch_line(self, line: str) -> str:
        s = line.strip()
        if s.startswith("##"):
            s = s[2:].lstrip()
        s = s.split(" [", 1)[0]
        return s.split("...", 1)[0].strip()

    def _parse_entry(self, line: str) -> StatusEntry | None:
        if len(line) < 4:
            return None
        return StatusEntry(xy=line[:2], path=line[3:])


def _git_error(command: str, error: ProcessError, fallback: str) -> GitError:
    return GitError(
        command=command,
        message=error.detail or fallback,
        returncode=error.returncode,
    )
