from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Callable, Dict, Iterator, List, Optional

from .errors import CyclicDependencyError, UnknownTaskError


class Kind(str, Enum):
    LEAF = "leaf"
    COMPOSITE = "composite"


class Mode(str, Enum):
    SEQUENTIAL = "sequential"
    PARALLEL = "parallel"


@dataclass(frozen=True)
class TaskSpec:
    name: str
    kind: Kind
    fn: Optional[Callable[..., object]] = None
    children: tuple[str, ...] = ()
    mode: Optional[Mode] = None
    description: str = ""

    def __post_init__(self) -> None:
        if self.kind is Kind.LEAF and self.fn is None:
            raise ValueError(f"Leaf task {self.name!r} needs a function")
        if self.kind is Kind.COMPOSITE and self.mode is None:
            raise ValueError(f"Composite task {self.name!r} needs a mode")


def task(name: str, description: str = ""):
    """Decorator to declare a leaf task on a function.

    The wrapped function receives a single `TaskContext`. It may be an async
    generator yielding the files it wrote, a coroutine function, or a plain
    function; the runner drains or awaits whatever it returns.
    """

    def deco(fn: Callable[..., object]):
        spec = TaskSpec(
            name=name,
            kind=Kind.LEAF,
            fn=fn,
            description=description or (fn.__doc__ or "").strip().split("\n")[0],
        )
        setattr(fn, "_task_spec", spec)
        return fn

    return deco


def series(name: str, *children: str, description: str = "") -> TaskSpec:
    return TaskSpec(
        name=name,
        kind=Kind.COMPOSITE,
        children=tuple(children),
        mode=Mode.SEQUENTIAL,
        description=description,
    )


def parallel(name: str, *children: str, description: str = "") -> TaskSpec:
    return TaskSpec(
        name=name,
        kind=Kind.COMPOSITE,
        children=tuple(children),
        mode=Mode.PARALLEL,
        description=description,
    )


def find_cycle(
    start: str, tasks: Dict[str, TaskSpec], strict: bool = True
) -> None:
    """Walk composite children from `start`.

    Raises CyclicDependencyError when a task on the current path is reached
    again. With `strict`, a reference to an unregistered task raises
    UnknownTaskError; otherwise it is treated as a leaf still to come.
    """
    path: List[str] = []
    on_path: set[str] = set()
    done: set[str] = set()

    def visit(name: str) -> None:
        if name in on_path:
            raise CyclicDependencyError(path[path.index(name):] + [name])
        if name in done:
            return
        spec = tasks.get(name)
        if spec is None:
            if strict:
                raise UnknownTaskError(name, referenced_by=path[-1] if path else None)
            return
        if spec.kind is Kind.COMPOSITE:
            on_path.add(name)
            path.append(name)
            for child in spec.children:
                visit(child)
            path.pop()
            on_path.discard(name)
        done.add(name)

    visit(start)


class TaskRegistry:
    """Named build tasks and their composition."""

    def __init__(self) -> None:
        self._tasks: Dict[str, TaskSpec] = {}

    def register(self, name: str, definition: TaskSpec) -> None:
        if definition.name != name:
            definition = replace(definition, name=name)
        candidate = dict(self._tasks)
        candidate[name] = definition
        # Children may be registered later; only cycles are fatal here.
        find_cycle(name, candidate, strict=False)
        self._tasks = candidate

    def add(self, spec_or_fn) -> TaskSpec:
        """Register a TaskSpec or a function decorated with `@task`."""
        spec = getattr(spec_or_fn, "_task_spec", spec_or_fn)
        if not isinstance(spec, TaskSpec):
            raise TypeError(f"Not a task: {spec_or_fn!r}")
        self.register(spec.name, spec)
        return spec

    def resolve(self, name: str) -> TaskSpec:
        find_cycle(name, self._tasks, strict=True)
        return self._tasks[name]

    def names(self) -> List[str]:
        return sorted(self._tasks)

    def __contains__(self, name: object) -> bool:
        return name in self._tasks

    def __iter__(self) -> Iterator[TaskSpec]:
        return iter(self._tasks[n] for n in self.names())

    def __len__(self) -> int:
        return len(self._tasks)
