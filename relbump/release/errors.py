from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

ReleaseErrorKind = Literal[
    "environment",
    "sync",
    "divergence",
    "stash_conflict",
    "version_format",
    "tag_collision",
    "push",
    "git",
]


@dataclass(frozen=True, slots=True)
class ReleaseError:
    kind: ReleaseErrorKind
    message: str
    hint: str | None = None
