from __future__ import annotations

import asyncio
import contextlib
import inspect
import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Protocol

from .config import BuildFlags
from .core import Kind, Mode, TaskRegistry, TaskSpec
from .errors import TaskFailure
from .logging import format_duration, get_logger
from .watcher import GlobBinding, Watcher


class Notifier(Protocol):
    def reload(self) -> None: ...


class NullNotifier:
    """Notifier used when no browser is listening."""

    def __init__(self) -> None:
        self.logger = get_logger("docbuild.reload")

    def reload(self) -> None:
        self.logger.debug("Reload requested (no live-reload server)")


@dataclass
class TaskContext:
    """Everything a leaf task function gets to work with."""

    name: str
    params: dict
    flags: BuildFlags
    runner: "TaskRunner"
    notifier: Notifier
    root: Path
    logger: logging.Logger = field(repr=False)

    async def watch(self, bindings: Iterable[GlobBinding]) -> None:
        """Watch `bindings` until the runner is stopped or the run is cancelled."""
        watcher = Watcher(
            self.runner, list(bindings), root=self.root, stop=self.runner.stopping
        )
        await watcher.watch_forever()


class TaskRunner:
    """Executes tasks from a registry on the running event loop.

    Leaf results are drained or awaited; sequential composites run children one
    after another and stop at the first failure; parallel composites start all
    children and raise the first failure as soon as it arrives. Siblings still
    running at that point are never cancelled; `join()` waits for them.
    """

    def __init__(
        self,
        registry: TaskRegistry,
        params: dict | None = None,
        flags: BuildFlags | None = None,
        notifier: Notifier | None = None,
        root: Path | str = ".",
    ):
        self.registry = registry
        self.params = params or {}
        self.flags = flags or BuildFlags()
        self.notifier = notifier or NullNotifier()
        self.root = Path(root)
        self.logger = get_logger("docbuild.runner")
        self.stopping = asyncio.Event()
        self._detached: set[asyncio.Task] = set()

    async def run(self, name: str) -> None:
        # Validates the whole graph before anything starts
        spec = self.registry.resolve(name)
        await self._run_spec(spec)

    async def _run_spec(self, spec: TaskSpec) -> None:
        self.logger.info("Starting '%s'...", spec.name)
        started = time.perf_counter()
        try:
            if spec.kind is Kind.LEAF:
                await self._run_leaf(spec)
            elif spec.mode is Mode.SEQUENTIAL:
                await self._run_sequential(spec)
            else:
                await self._run_parallel(spec)
        except TaskFailure:
            self.logger.error(
                "'%s' errored after %s",
                spec.name,
                format_duration(time.perf_counter() - started),
            )
            raise
        self.logger.info(
            "Finished '%s' after %s",
            spec.name,
            format_duration(time.perf_counter() - started),
        )

    async def _run_leaf(self, spec: TaskSpec) -> None:
        task_logger = get_logger(f"docbuild.task.{spec.name}")
        ctx = TaskContext(
            name=spec.name,
            params=self.params,
            flags=self.flags,
            runner=self,
            notifier=self.notifier,
            root=self.root,
            logger=task_logger,
        )
        try:
            result = spec.fn(ctx)
            if inspect.isasyncgen(result):
                async with contextlib.aclosing(result) as stream:
                    async for _ in stream:
                        pass
            elif inspect.isawaitable(result):
                await result
            elif result is not None:
                for _ in result:
                    pass
        except TaskFailure:
            # A nested run already reported its own failure
            raise
        except Exception as e:  # noqa: BLE001
            task_logger.exception("Task failed: %s", spec.name)
            raise TaskFailure(spec.name, e) from e

    async def _run_sequential(self, spec: TaskSpec) -> None:
        for child in spec.children:
            await self._run_spec(self.registry.resolve(child))

    async def _run_parallel(self, spec: TaskSpec) -> None:
        children = [self.registry.resolve(c) for c in spec.children]
        # create_task schedules in declared order
        running = [asyncio.create_task(self._run_spec(c)) for c in children]
        try:
            for fut in asyncio.as_completed(running):
                await fut
        except TaskFailure:
            for t in running:
                self._detach(t)
            raise

    def _detach(self, t: asyncio.Task) -> None:
        self._detached.add(t)
        t.add_done_callback(self._settled)

    def _settled(self, t: asyncio.Task) -> None:
        self._detached.discard(t)
        if not t.cancelled():
            # Failures were logged by _run_spec when they happened
            t.exception()

    def stop(self) -> None:
        """Ask long-running leaves (watchers, the server) to return."""
        self.stopping.set()

    async def join(self) -> None:
        """Wait for siblings left running by a failed parallel composite."""
        while self._detached:
            await asyncio.gather(*list(self._detached), return_exceptions=True)
