"""Result type for explicit error handling.

Every fallible operation in relbump (git calls, config loading, tag
resolution, workflow steps) returns a Result instead of raising, so the
release workflow can stop at the first failure and report it in one place.

Usage:
    def fetch(repo: Repository) -> Result[str, GitError]:
        ...

    match fetch(repo):
        case Ok(output):
            print(output)
        case Err(error):
            print(f"fetch failed: {error.message}")
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Ok[T]:
    """A successful result.

    Attributes:
        value: The success value.
    """

    value: T

    def unwrap(self) -> T:
        """Returns the contained value."""
        return self.value

    def __repr__(self) -> str:
        return f"Ok({self.value!r})"


@dataclass(frozen=True, slots=True)
class Err[E]:
    """A failed result.

    Attributes:
        error: The error value.
    """

    error: E

    def unwrap(self) -> None:
        """Raises ValueError carrying the error."""
        raise ValueError(f"called unwrap on Err: {self.error}")

    def __repr__(self) -> str:
        return f"Err({self.error!r})"


type Result[T, E] = Ok[T] | Err[E]
