from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass

from relbump.core.result import Err, Ok, Result
from relbump.release.errors import ReleaseError


BASELINE_TAG = "v0.0.0"

_TAG_RE = re.compile(r"([0-9]+)\.([0-9]+)\.([0-9]+)")
_PART_RE = re.compile(rb"([^0-9]*)([0-9]*)")
_SUFFIX_RE = re.compile(rb"(.+?)((?:\.[A-Za-z~][A-Za-z0-9~]*)*)", re.DOTALL)

type _Segments = tuple[tuple[tuple[int, ...], int], ...]


@dataclass(frozen=True, slots=True, order=True)
class SemVer:
    major: int
    minor: int
    patch: int

    def to_tag(self) -> str:
        return f"v{self.major}.{self.minor}.{self.patch}"

    def bump_minor(self) -> SemVer:
        return SemVer(self.major, self.minor + 1, 0)


@dataclass(frozen=True, slots=True)
class Tag:
    version: SemVer
    prefixed: bool


@dataclass(frozen=True, slots=True)
class NextTag:
    latest: str
    latest_is_baseline: bool
    version: SemVer

    @property
    def tag(self) -> str:
        return self.version.to_tag()


def parse_tag(tag: str) -> Result[Tag, ReleaseError]:
    """Parse `vX.Y.Z` or `X.Y.Z`; anything else is rejected, never guessed."""
    prefixed = tag.startswith("v")
    body = tag[1:] if prefixed else tag
    m = _TAG_RE.fullmatch(body)
    if m is None:
        return Err(
            ReleaseError(
                kind="version_format",
                message=f"latest tag '{tag}' is not SemVer (X.Y.Z or vX.Y.Z)",
                hint="tag the release by hand, or push a vX.Y.Z tag so it becomes the latest",
            )
        )
    version = SemVer(int(m.group(1)), int(m.group(2)), int(m.group(3)))
    return Ok(Tag(version=version, prefixed=prefixed))


def _char_order(c: int) -> int:
    if c == 0x7E:  # "~" sorts before everything, even the end of a run
        return -1
    if bytes((c,)).isalpha():
        return c
    return c + 256


def _segments(name: bytes) -> _Segments:
    parts = [
        (tuple(_char_order(c) for c in text) + (0,), int(digits or b"0"))
        for text, digits in _PART_RE.findall(name)
        if text or digits
    ]
    # End of name: empty text, number 0.
    parts.append(((0,), 0))
    return tuple(parts)


def version_sort_key(tag: str) -> tuple[_Segments, _Segments, bytes]:
    """Sort key ordering tags the way GNU `sort -V` orders lines.

    Names alternate text and digit runs. Digit runs compare as numbers.
    Text runs compare byte by byte: "~" first, then end of run, then
    ASCII letters, then everything else. Trailing `.ext` suffixes are
    ignored on the first pass and only break ties, and the raw bytes
    break any tie left after that.
    """
    raw = tag.encode("utf-8")
    m = _SUFFIX_RE.fullmatch(raw)
    stem = m.group(1) if m else raw
    return (_segments(stem), _segments(raw), raw)


def latest_tag(tags: Iterable[str]) -> str | None:
    names = [t.strip() for t in tags if t.strip()]
    if not names:
        return None
    return max(names, key=version_sort_key)


def resolve_next_tag(tags: Iterable[str]) -> Result[NextTag, ReleaseError]:
    latest = latest_tag(tags)
    is_baseline = latest is None
    source = BASELINE_TAG if latest is None else latest

    parsed = parse_tag(source)
    if isinstance(parsed, Err):
        return parsed

    return Ok(
        NextTag(
            latest=source,
            latest_is_baseline=is_baseline,
            version=parsed.value.version.bump_minor(),
        )
    )
