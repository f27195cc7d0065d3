from __future__ import annotations

"""File streams for leaf tasks.

A leaf task reads files with `src`, transforms the `BuildFile` items as they
pass, and writes them with `dest`. Both are async generators so the runner can
drain the whole chain lazily, one file at a time.
"""

import asyncio
import os
import shutil
from dataclasses import dataclass, replace
from pathlib import Path, PurePosixPath
from typing import AsyncIterable, AsyncIterator, Callable, Iterable, List

from .utils import glob_base, glob_match


@dataclass(frozen=True)
class BuildFile:
    base: Path
    path: PurePosixPath  # relative to base
    contents: bytes

    @property
    def name(self) -> str:
        return self.path.name

    @property
    def source(self) -> Path:
        return self.base / self.path

    def text(self) -> str:
        return self.contents.decode("utf-8")

    def with_text(self, text: str) -> "BuildFile":
        return replace(self, contents=text.encode("utf-8"))

    def with_path(self, path: PurePosixPath | str) -> "BuildFile":
        return replace(self, path=PurePosixPath(path))


def minified_name(path: PurePosixPath | str) -> PurePosixPath:
    """`foo.js` -> `foo.min.js`, next to the original."""
    p = PurePosixPath(path)
    if not p.suffix:
        return p.with_name(p.name + ".min")
    return p.with_name(f"{p.stem}.min{p.suffix}")


def expand_globs(patterns: Iterable[str], root: Path) -> List[tuple[Path, Path]]:
    """Resolve glob patterns under `root` into sorted (base, file) pairs."""
    found: dict[Path, Path] = {}
    for pat in patterns:
        base = root / glob_base(pat)
        if not any(ch in pat for ch in "*?["):
            p = root / pat
            if p.is_file():
                found.setdefault(p, base)
            continue
        if not base.is_dir():
            continue
        for dirpath, _, files in os.walk(base):
            for file in files:
                p = Path(dirpath) / file
                rel = p.relative_to(root).as_posix()
                if glob_match(rel, pat):
                    found.setdefault(p, base)
    return [(found[p], p) for p in sorted(found)]


async def src(
    patterns: str | Iterable[str],
    root: Path,
    exclude: Callable[[PurePosixPath], bool] | None = None,
) -> AsyncIterator[BuildFile]:
    if isinstance(patterns, str):
        patterns = [patterns]
    for base, path in expand_globs(patterns, root):
        rel = PurePosixPath(path.relative_to(base).as_posix())
        if exclude is not None and exclude(rel):
            continue
        yield BuildFile(base=base, path=rel, contents=path.read_bytes())
        # Hand control back to the loop between files
        await asyncio.sleep(0)


async def dest(files: AsyncIterable[BuildFile], out_dir: Path) -> AsyncIterator[BuildFile]:
    """Write every file under `out_dir` and pass it on once written."""
    async for f in files:
        target = out_dir / f.path
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(f.contents)
        yield replace(f, base=out_dir)


def remove_paths(patterns: str | Iterable[str], root: Path) -> List[Path]:
    """Delete directories, files or glob matches under `root`.

    Missing paths are not an error, so clearing twice is the same as once.
    """
    if isinstance(patterns, str):
        patterns = [patterns]
    removed: List[Path] = []
    for pat in patterns:
        if any(ch in pat for ch in "*?["):
            for _, p in expand_globs([pat], root):
                p.unlink(missing_ok=True)
                removed.append(p)
            continue
        p = root / pat
        if p.is_dir():
            shutil.rmtree(p)
            removed.append(p)
        elif p.exists():
            p.unlink()
            removed.append(p)
    return removed
