from __future__ import annotations

from typing import AsyncIterator

from ..orchestrator import BuildFile, GlobBinding, dest, src, task
from ..orchestrator.runner import TaskContext
from ..orchestrator.stream import remove_paths
from ..orchestrator.utils import output, source


@task(name="docs:fonts:clear")
def clear_fonts(ctx: TaskContext):
    remove_paths(output(ctx.params, "doc_fonts"), ctx.root)


@task(name="docs:fonts:copy")
async def copy_fonts(ctx: TaskContext) -> AsyncIterator[BuildFile]:
    """Copy icon fonts into the site."""
    files = src(source(ctx.params, "doc_fonts"), ctx.root)
    async for f in dest(files, ctx.root / output(ctx.params, "doc_fonts")):
        yield f


@task(name="docs:fonts:watch")
async def watch_fonts(ctx: TaskContext) -> None:
    await ctx.watch(
        [
            GlobBinding(
                source(ctx.params, "doc_fonts"),
                "docs:fonts:build",
                after=ctx.notifier.reload,
            )
        ]
    )
