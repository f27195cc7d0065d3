# tests/fakes.py

from __future__ import annotations

import asyncio
from typing import Callable, List

from docbuild.orchestrator import TaskRegistry
from docbuild.orchestrator.core import Kind, TaskSpec


class FakeNotifier:
    def __init__(self) -> None:
        self.reloads = 0

    def reload(self) -> None:
        self.reloads += 1


class Recorder:
    """Collects start/finish events from fake leaf tasks."""

    def __init__(self) -> None:
        self.events: List[str] = []

    def leaf(
        self,
        name: str,
        *,
        fail: bool = False,
        delay: float = 0.0,
        effect: Callable[[], None] | None = None,
    ) -> TaskSpec:
        async def fn(ctx) -> None:
            self.events.append(f"start:{name}")
            if delay:
                await asyncio.sleep(delay)
            if fail:
                self.events.append(f"fail:{name}")
                raise RuntimeError(f"{name} broke")
            if effect is not None:
                effect()
            self.events.append(f"done:{name}")

        return TaskSpec(name=name, kind=Kind.LEAF, fn=fn)

    def started(self) -> List[str]:
        return [e.split(":", 1)[1] for e in self.events if e.startswith("start:")]


def registry_with(*specs: TaskSpec) -> TaskRegistry:
    registry = TaskRegistry()
    for spec in specs:
        registry.add(spec)
    return registry
