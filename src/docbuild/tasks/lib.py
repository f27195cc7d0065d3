"""Library tasks: clear `dist`, compile sources into it, add minified copies."""

from __future__ import annotations

import asyncio
from typing import AsyncIterator

import rjsmin

from ..orchestrator import BuildFile, GlobBinding, TransformError, dest, src, task
from ..orchestrator.runner import TaskContext
from ..orchestrator.stream import minified_name, remove_paths
from ..orchestrator.utils import command, fill_command, output, source


@task(name="lib:clear")
def clear_lib(ctx: TaskContext):
    """Delete the compiled library output."""
    removed = remove_paths(output(ctx.params, "lib"), ctx.root)
    ctx.logger.debug("Removed %d path(s)", len(removed))


async def compile_file(f: BuildFile, cmd: list[str], cwd) -> BuildFile:
    """Run the configured compiler on one source file, reading its stdout."""
    argv = fill_command(cmd, src=str(f.source))
    proc = await asyncio.create_subprocess_exec(
        *argv,
        cwd=str(cwd),
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    out, err = await proc.communicate()
    if proc.returncode != 0:
        raise TransformError(
            f"{argv[0]} exited with {proc.returncode} on {f.path}: "
            f"{err.decode('utf-8', 'replace').strip()}"
        )
    return BuildFile(base=f.base, path=f.path, contents=out)


async def _compiled(ctx: TaskContext) -> AsyncIterator[BuildFile]:
    cmd = command(ctx.params, "compile")
    async for f in src(source(ctx.params, "lib"), ctx.root):
        if cmd:
            f = await compile_file(f, cmd, ctx.root)
        yield f


@task(name="lib:compile")
async def compile_lib(ctx: TaskContext) -> AsyncIterator[BuildFile]:
    """Compile library sources into the output directory."""
    async for f in dest(_compiled(ctx), ctx.root / output(ctx.params, "lib")):
        ctx.logger.debug("Compiled %s", f.path)
        yield f


def minify_js(f: BuildFile) -> BuildFile:
    try:
        text = rjsmin.jsmin(f.text())
    except UnicodeDecodeError as e:
        raise TransformError(f"Cannot minify {f.path}: {e}") from e
    return f.with_text(text).with_path(minified_name(f.path))


async def _minified(ctx: TaskContext) -> AsyncIterator[BuildFile]:
    files = src(
        source(ctx.params, "dist"),
        ctx.root,
        exclude=lambda p: p.name.endswith(".min.js"),
    )
    async for f in files:
        yield minify_js(f)


@task(name="lib:minify")
async def minify_lib(ctx: TaskContext) -> AsyncIterator[BuildFile]:
    """Write a `.min.js` next to every compiled library file."""
    async for f in dest(_minified(ctx), ctx.root / output(ctx.params, "lib")):
        ctx.logger.debug("Minified %s", f.path)
        yield f


@task(name="lib:watch")
async def watch_lib(ctx: TaskContext) -> None:
    """Rebuild the library when its sources change."""
    await ctx.watch([GlobBinding(source(ctx.params, "lib"), "lib:build")])
