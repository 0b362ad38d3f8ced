"""Release tag computation and the release workflow."""

from relbump.release.errors import ReleaseError, ReleaseErrorKind
from relbump.release.semver import NextTag, SemVer, Tag, latest_tag, parse_tag, resolve_next_tag
from relbump.release.steps import Step, StepFailure, run_steps
from relbump.release.workflow import (
    ReleaseContext,
    ReleasePlan,
    WorkflowState,
    plan_release,
    preview_next_tag,
    run_release,
)

__all__ = [
    # errors
    "ReleaseError",
    "ReleaseErrorKind",
    # semver
    "NextTag",
    "SemVer",
    "Tag",
    "latest_tag",
    "parse_tag",
    "resolve_next_tag",
    # steps
    "Step",
    "StepFailure",
    "run_steps",
    # workflow
    "ReleaseContext",
    "ReleasePlan",
    "WorkflowState",
    "plan_release",
    "preview_next_tag",
    "run_release",
]
