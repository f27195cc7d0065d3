"""Client-side scripts for the docs site, bundled by an external tool."""

from __future__ import annotations

import asyncio
from pathlib import Path, PurePosixPath
from typing import AsyncIterator

import rjsmin

from ..orchestrator import BuildFile, BundlerReportedError, GlobBinding, TaskFailure, task
from ..orchestrator.runner import TaskContext
from ..orchestrator.utils import command, fill_command, output, source

# esbuild's CLI; anything taking the same placeholders works
DEFAULT_BUNDLER = ["esbuild", "{entry}", "--bundle", "--outfile={outfile}"]


async def run_bundler(ctx: TaskContext, entry: Path, outfile: Path) -> str:
    """Run the bundler and return its report. A non-zero exit is a failure."""
    cmd = command(ctx.params, "bundle") or DEFAULT_BUNDLER
    argv = fill_command(
        cmd, entry=str(entry), outfile=str(outfile), outdir=str(outfile.parent)
    )
    outfile.parent.mkdir(parents=True, exist_ok=True)
    try:
        proc = await asyncio.create_subprocess_exec(
            *argv,
            cwd=str(ctx.root),
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.STDOUT,
        )
    except FileNotFoundError as e:
        raise BundlerReportedError(f"Bundler not found: {argv[0]}") from e
    out, _ = await proc.communicate()
    report = out.decode("utf-8", "replace").strip()
    if report:
        ctx.logger.info("%s", report)
    if proc.returncode != 0:
        raise BundlerReportedError(
            f"{argv[0]} reported errors (exit {proc.returncode})"
        )
    return report


@task(name="docs:scripts:build")
async def build_scripts(ctx: TaskContext) -> AsyncIterator[BuildFile]:
    """Bundle the docs entry script; minify the bundle in production."""
    entry = ctx.root / source(ctx.params, "doc_scripts_main")
    out_dir = ctx.root / output(ctx.params, "doc_scripts")
    outfile = out_dir / entry.name
    await run_bundler(ctx, entry, outfile)
    if not outfile.exists():
        raise BundlerReportedError(f"Bundler produced no {outfile}")
    bundle = BuildFile(
        base=out_dir, path=PurePosixPath(outfile.name), contents=outfile.read_bytes()
    )
    if ctx.flags.prod:
        bundle = bundle.with_text(rjsmin.jsmin(bundle.text()))
        outfile.write_bytes(bundle.contents)
        ctx.logger.info("Minified %s", outfile.name)
    yield bundle


@task(name="docs:scripts:watch")
async def watch_scripts(ctx: TaskContext) -> None:
    """Bundle once, then again on every script change."""
    try:
        await ctx.runner.run("docs:scripts:build")
    except TaskFailure as e:
        ctx.logger.error("Initial bundle failed: %s", e)
    else:
        ctx.notifier.reload()
    await ctx.watch(
        [
            GlobBinding(
                source(ctx.params, "doc_scripts"),
                "docs:scripts:build",
                after=ctx.notifier.reload,
            )
        ]
    )
