"""Stylesheets: compile the Sass entry point into the site."""

from __future__ import annotations

from typing import AsyncIterator

import sass

from ..orchestrator import BuildFile, GlobBinding, TransformError, dest, src, task
from ..orchestrator.runner import TaskContext
from ..orchestrator.stream import remove_paths
from ..orchestrator.utils import output, source


def compile_scss(f: BuildFile, prod: bool) -> BuildFile:
    try:
        css = sass.compile(
            filename=str(f.source),
            output_style="compressed" if prod else "expanded",
            include_paths=[str(f.source.parent)],
        )
    except sass.CompileError as e:
        raise TransformError(f"Sass error in {f.path}: {e}") from e
    return f.with_text(css).with_path(f.path.with_suffix(".css"))


async def _compiled(ctx: TaskContext) -> AsyncIterator[BuildFile]:
    async for f in src(source(ctx.params, "doc_styles_main"), ctx.root):
        yield compile_scss(f, ctx.flags.prod)


@task(name="docs:styles:clear")
def clear_styles(ctx: TaskContext):
    remove_paths(output(ctx.params, "doc_styles"), ctx.root)


@task(name="docs:styles:compile")
async def compile_styles(ctx: TaskContext) -> AsyncIterator[BuildFile]:
    async for f in dest(_compiled(ctx), ctx.root / output(ctx.params, "doc_styles")):
        ctx.logger.debug("Wrote %s", f.path)
        yield f


@task(name="docs:styles:watch")
async def watch_styles(ctx: TaskContext) -> None:
    await ctx.watch(
        [
            GlobBinding(
                source(ctx.params, "doc_styles"),
                "docs:styles:build",
                after=ctx.notifier.reload,
            )
        ]
    )
