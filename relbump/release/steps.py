from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import TypeVar

from relbump.core.result import Err, Ok, Result
from relbump.release.errors import ReleaseError

C = TypeVar("C")
S = TypeVar("S")


StepHandler = Callable[[C, S], Result[S, ReleaseError]]


@dataclass(frozen=True, slots=True)
class Step[C, S]:
    name: str
    handler: StepHandler[C, S]


@dataclass(frozen=True, slots=True)
class StepFailure[S]:
    """A step returned Err; `state` is what the previous steps had produced."""

    step: str
    error: ReleaseError
    state: S


def run_steps(
    *,
    context: C,
    initial_state: S,
    steps: Sequence[Step[C, S]],
) -> Result[S, StepFailure[S]]:
    current = initial_state

    for step in steps:
        outcome = step.handler(context, current)
        if isinstance(outcome, Err):
            return Err(StepFailure(step=step.name, error=outcome.error, state=current))
        current = outcome.value

    return Ok(current)
