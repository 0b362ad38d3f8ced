"""Platform abstraction layer."""

from .process import ProcessError, child_env, run

__all__ = [
    "ProcessError",
    "child_env",
    "run",
]
