"""Typed release configuration.

Configuration comes from the environment (``GIT_REMOTE``, ``GIT_BRANCH``,
``RELBUMP_COMMIT_MESSAGE``) and can be overridden per invocation by CLI
options. Empty values fall back to the defaults below.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, replace

from .result import Err, Ok, Result

__all__ = [
    "ConfigError",
    "ReleaseConfig",
    "load_config",
    "DEFAULT_REMOTE",
    "DEFAULT_BRANCH",
    "DEFAULT_COMMIT_MESSAGE",
    "DEFAULT_STASH_PREFIX",
    "ENV_REMOTE",
    "ENV_BRANCH",
    "ENV_COMMIT_MESSAGE",
]

DEFAULT_REMOTE = "origin"
DEFAULT_BRANCH = "main"
DEFAULT_COMMIT_MESSAGE = "updated submodule"
DEFAULT_STASH_PREFIX = "auto-stash"

ENV_REMOTE = "GIT_REMOTE"
ENV_BRANCH = "GIT_BRANCH"
ENV_COMMIT_MESSAGE = "RELBUMP_COMMIT_MESSAGE"


@dataclass(frozen=True, slots=True)
class ConfigError:
    """Error when a configuration value is unusable."""

    message: str
    key: str | None = None


@dataclass(frozen=True, slots=True)
class ReleaseConfig:
    """Settings for one release run.

    Attributes:
        remote: Remote to fetch from and push to.
        branch: Release branch that receives the commit and the tag.
        commit_message: Message for the commit of restored local changes.
        stash_prefix: Label prefix for the automatic stash entry.
        checkout_tag: Check out the new tag (detached HEAD) when done.
    """

    remote: str = DEFAULT_REMOTE
    branch: str = DEFAULT_BRANCH
    commit_message: str = DEFAULT_COMMIT_MESSAGE
    stash_prefix: str = DEFAULT_STASH_PREFIX
    checkout_tag: bool = True

    def with_overrides(
        self,
        *,
        remote: str | None = None,
        branch: str | None = None,
        commit_message: str | None = None,
        checkout_tag: bool | None = None,
    ) -> Result[ReleaseConfig, ConfigError]:
        """Return a copy with CLI overrides applied (None keeps the current value)."""
        changes: dict[str, object] = {}
        if remote is not None:
            name = _ref_name(ENV_REMOTE, remote)
            if isinstance(name, Err):
                return name
            changes["remote"] = name.value
        if branch is not None:
            name = _ref_name(ENV_BRANCH, branch)
            if isinstance(name, Err):
                return name
            changes["branch"] = name.value
        if commit_message is not None:
            if not commit_message.strip():
                return Err(ConfigError("commit message must not be empty", key="message"))
            changes["commit_message"] = commit_message
        if checkout_tag is not None:
            changes["checkout_tag"] = checkout_tag
        return Ok(replace(self, **changes))


def _ref_name(key: str, raw: str) -> Result[str, ConfigError]:
    name = raw.strip()
    if not name:
        return Err(ConfigError(f"{key} must not be empty", key=key))
    if any(ch.isspace() for ch in name):
        return Err(ConfigError(f"{key} must not contain whitespace: {raw!r}", key=key))
    return Ok(name)


def load_config(environ: Mapping[str, str]) -> Result[ReleaseConfig, ConfigError]:
    """Build a ReleaseConfig from environment variables.

    Args:
        environ: Environment mapping (usually ``os.environ``).

    Returns:
        Ok(ReleaseConfig) on success
        Err(ConfigError) if a value is present but invalid
    """
    remote = _ref_name(ENV_REMOTE, environ.get(ENV_REMOTE, "") or DEFAULT_REMOTE)
    if isinstance(remote, Err):
        return remote

    branch = _ref_name(ENV_BRANCH, environ.get(ENV_BRANCH, "") or DEFAULT_BRANCH)
    if isinstance(branch, Err):
        return branch

    message = environ.get(ENV_COMMIT_MESSAGE, "").strip() or DEFAULT_COMMIT_MESSAGE

    return Ok(
        ReleaseConfig(
            remote=remote.value,
            branch=branch.value,
            commit_message=message,
        )
    )
