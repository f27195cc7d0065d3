# tests/test_lib_tasks.py

from __future__ import annotations

import sys

import pytest

from docbuild.orchestrator import TaskFailure, TaskRunner, TransformError, series
from docbuild.tasks import lib

from .fakes import registry_with

UPPERCASE = [sys.executable, "-c", "import sys; sys.stdout.write(open(sys.argv[1]).read().upper())", "{src}"]


def _runner(project, compile_cmd=None) -> TaskRunner:
    registry = registry_with(
        lib.clear_lib,
        lib.compile_lib,
        lib.minify_lib,
        series("lib:build", "lib:clear", "lib:compile", "lib:minify"),
    )
    params = {"commands": {"compile": compile_cmd or []}}
    return TaskRunner(registry, params=params, root=project)


def _files(directory) -> list[str]:
    return sorted(p.relative_to(directory).as_posix() for p in directory.rglob("*") if p.is_file())


@pytest.mark.asyncio
async def test_clear_twice_leaves_same_empty_state(project) -> None:
    dist = project / "dist"
    (dist / "nested").mkdir(parents=True)
    (dist / "nested" / "old.js").write_text("old")
    runner = _runner(project)

    await runner.run("lib:clear")
    assert not dist.exists()
    await runner.run("lib:clear")
    assert not dist.exists()


@pytest.mark.asyncio
async def test_build_without_compiler_copies_and_minifies(project) -> None:
    await _runner(project).run("lib:build")

    dist = project / "dist"
    assert _files(dist) == ["alder.js", "alder.min.js", "util/seq.js", "util/seq.min.js"]
    original = (dist / "alder.js").read_text()
    minified = (dist / "alder.min.js").read_text()
    assert "// Alder" in original
    assert "// Alder" not in minified
    assert "function add" in minified
    assert len(minified) < len(original)


@pytest.mark.asyncio
async def test_minify_twice_does_not_minify_minified_files(project) -> None:
    runner = _runner(project)
    await runner.run("lib:build")
    await runner.run("lib:minify")
    assert "alder.min.min.js" not in _files(project / "dist")


@pytest.mark.asyncio
async def test_compile_command_output_is_written(project) -> None:
    await _runner(project, compile_cmd=UPPERCASE).run("lib:compile")
    assert (project / "dist" / "alder.js").read_text().startswith("// ALDER")


@pytest.mark.asyncio
async def test_failing_compile_command_fails_task(project) -> None:
    failing = [sys.executable, "-c", "import sys; sys.exit(3)", "{src}"]
    with pytest.raises(TaskFailure) as exc:
        await _runner(project, compile_cmd=failing).run("lib:build")
    assert exc.value.task == "lib:compile"
    assert isinstance(exc.value.cause, TransformError)
    # lib:minify never ran
    assert not (project / "dist").exists() or not list((project / "dist").rglob("*.min.js"))
