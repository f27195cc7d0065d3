"""In-repo task orchestrator for the docs/library build.

Provides task primitives, sequential/parallel scheduling on asyncio, file
streams, a file watcher and a Typer CLI.
"""

from .config import BuildFlags
from .core import TaskRegistry, TaskSpec, parallel, series, task
from .errors import (
    BuildError,
    BundlerReportedError,
    CyclicDependencyError,
    TaskFailure,
    TransformError,
    UnknownTaskError,
)
from .runner import TaskContext, TaskRunner
from .stream import BuildFile, dest, src
from .watcher import GlobBinding, Watcher

__all__ = [
    "BuildFlags",
    "TaskRegistry",
    "TaskSpec",
    "parallel",
    "series",
    "task",
    "BuildError",
    "BundlerReportedError",
    "CyclicDependencyError",
    "TaskFailure",
    "TransformError",
    "UnknownTaskError",
    "TaskContext",
    "TaskRunner",
    "BuildFile",
    "dest",
    "src",
    "GlobBinding",
    "Watcher",
]
