from __future__ import annotations

import asyncio
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional, Sequence

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from .errors import BuildError
from .logging import get_logger
from .utils import glob_base, glob_match


@dataclass(frozen=True)
class GlobBinding:
    """Re-run `task` when a file matching `patterns` changes."""

    patterns: Sequence[str] | str
    task: str
    after: Optional[Callable[[], None]] = None

    def pattern_list(self) -> List[str]:
        if isinstance(self.patterns, str):
            return [self.patterns]
        return list(self.patterns)

    def matches(self, rel_path: str) -> bool:
        return any(glob_match(rel_path, pat) for pat in self.pattern_list())


class _ChangeHandler(FileSystemEventHandler):
    def __init__(self, watcher: "Watcher", loop: asyncio.AbstractEventLoop):
        self.watcher = watcher
        self.loop = loop

    def _handle(self, path: str, is_directory: bool) -> None:
        if is_directory:
            return
        # Called on the observer thread
        self.loop.call_soon_threadsafe(self.watcher.dispatch, path)

    def on_created(self, event: FileSystemEvent) -> None:
        self._handle(event.src_path, event.is_directory)

    def on_modified(self, event: FileSystemEvent) -> None:
        self._handle(event.src_path, event.is_directory)

    def on_deleted(self, event: FileSystemEvent) -> None:
        self._handle(event.src_path, event.is_directory)

    def on_moved(self, event: FileSystemEvent) -> None:
        self._handle(event.dest_path, event.is_directory)


class Watcher:
    """Runs bound tasks again whenever a watched file changes.

    Every matching event starts its own run; nothing is debounced or merged.
    A failed run is logged and the watcher keeps going.
    """

    def __init__(
        self,
        runner,
        bindings: List[GlobBinding],
        root: Path | str = ".",
        stop: Optional[asyncio.Event] = None,
    ):
        self.runner = runner
        self.bindings = bindings
        self.root = Path(root).resolve()
        self.logger = get_logger("docbuild.watcher")
        self._inflight: set[asyncio.Task] = set()
        self.stop = stop

    def _relative(self, path: str | os.PathLike) -> str:
        p = Path(path)
        if p.is_absolute():
            try:
                p = p.resolve().relative_to(self.root)
            except ValueError:
                return p.as_posix()
        return p.as_posix()

    def dispatch(self, path: str | os.PathLike) -> List[asyncio.Task]:
        rel = self._relative(path)
        scheduled: List[asyncio.Task] = []
        for binding in self.bindings:
            if not binding.matches(rel):
                continue
            self.logger.info("Changed: %s → %s", rel, binding.task)
            t = asyncio.ensure_future(self._run_binding(binding))
            self._inflight.add(t)
            t.add_done_callback(self._inflight.discard)
            scheduled.append(t)
        return scheduled

    async def _run_binding(self, binding: GlobBinding) -> bool:
        try:
            await self.runner.run(binding.task)
        except BuildError as e:
            self.logger.error("Watched task '%s' failed: %s", binding.task, e)
            return False
        if binding.after is not None:
            try:
                binding.after()
            except Exception:  # noqa: BLE001
                self.logger.exception("After-run action for '%s' failed", binding.task)
                return False
        return True

    def _watch_dirs(self) -> List[Path]:
        dirs: List[Path] = []
        for binding in self.bindings:
            for pat in binding.pattern_list():
                d = self.root / glob_base(pat)
                if not d.is_dir():
                    self.logger.warning("Not watching %s: directory does not exist", d)
                    continue
                if d not in dirs:
                    dirs.append(d)
        return dirs

    async def watch_forever(self) -> None:
        loop = asyncio.get_running_loop()
        handler = _ChangeHandler(self, loop)
        observer = Observer()
        for d in self._watch_dirs():
            observer.schedule(handler, str(d), recursive=True)
        observer.start()
        self.logger.info(
            "Watching %s",
            ", ".join(p for b in self.bindings for p in b.pattern_list()),
        )
        try:
            # Runs until stopped or cancelled
            await (self.stop or asyncio.Event()).wait()
        finally:
            observer.stop()
            observer.join()
