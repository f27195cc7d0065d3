from __future__ import annotations

from typing import Iterable


class BuildError(Exception):
    """Base class for every error raised by the build orchestrator."""


class UnknownTaskError(BuildError, KeyError):
    def __init__(self, name: str, referenced_by: str | None = None):
        self.name = name
        self.referenced_by = referenced_by
        msg = f"Unknown task: {name}"
        if referenced_by:
            msg += f" (referenced by {referenced_by})"
        super().__init__(msg)

    def __str__(self) -> str:
        # KeyError repr-quotes its argument
        return self.args[0]


class CyclicDependencyError(BuildError):
    def __init__(self, cycle: Iterable[str]):
        self.cycle = list(cycle)
        super().__init__("Cycle detected in task graph: " + " → ".join(self.cycle))


class TransformError(BuildError):
    """A transform (compiler, renderer, copier...) failed mid-stream."""


class BundlerReportedError(TransformError):
    """The script bundler finished but reported compile errors."""


class TaskFailure(BuildError):
    """A run of `task` failed; `cause` is the original exception."""

    def __init__(self, task: str, cause: BaseException):
        self.task = task
        self.cause = cause
        super().__init__(f"Task '{task}' failed: {cause}")
