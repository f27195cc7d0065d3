from __future__ import annotations

import asyncio
import importlib
import pkgutil
from pathlib import Path

import typer
from dotenv import load_dotenv

from .config import BuildFlags, load_config
from .core import Kind, TaskRegistry, TaskSpec, parallel, series
from .errors import BuildError
from .logging import apply_env_level, get_logger
from .runner import Notifier, TaskRunner


app = typer.Typer(add_completion=False, help="Build and preview the library docs site")
log = get_logger("docbuild.cli")


def discover_tasks(registry: TaskRegistry, tasks_pkg: str = "docbuild.tasks") -> int:
    """Import all modules in the tasks package and register decorated functions."""
    count = 0
    try:
        pkg = importlib.import_module(tasks_pkg)
    except ModuleNotFoundError:
        log.warning("No tasks package found.")
        return count
    for m in pkgutil.iter_modules(pkg.__path__, prefix=f"{tasks_pkg}."):
        try:
            mod = importlib.import_module(m.name)
        except Exception as e:  # noqa: BLE001
            log.warning("Failed to import %s: %s", m.name, e)
            continue
        for attr_name in dir(mod):
            obj = getattr(mod, attr_name)
            spec = getattr(obj, "_task_spec", None)
            if isinstance(spec, TaskSpec):
                registry.add(spec)
                count += 1
    return count


def register_composites(registry: TaskRegistry, flags: BuildFlags) -> None:
    """Wire the leaf tasks into the build graph.

    Production builds bundle (and minify) the docs scripts as part of `build`;
    development builds leave that to `docs:scripts:watch`.
    """
    composites = [
        series("lib:build", "lib:clear", "lib:compile", "lib:minify"),
        series("docs:html:build", "docs:html:clear", "docs:html:compile"),
        series("docs:styles:build", "docs:styles:clear", "docs:styles:compile"),
        series("docs:fonts:build", "docs:fonts:clear", "docs:fonts:copy"),
        parallel(
            "docs:build",
            *(["docs:scripts:build"] if flags.prod else []),
            "docs:html:build",
            "docs:styles:build",
            "docs:fonts:build",
        ),
        series("build", "lib:build", "docs:build"),
        parallel(
            "watch",
            "lib:watch",
            "docs:scripts:watch",
            "docs:html:watch",
            "docs:styles:watch",
            "docs:fonts:watch",
        ),
        parallel("dev", "watch", "server"),
        series("default", "build", "dev"),
    ]
    for spec in composites:
        registry.add(spec)


def build_registry(flags: BuildFlags) -> TaskRegistry:
    registry = TaskRegistry()
    discover_tasks(registry)
    register_composites(registry, flags)
    return registry


def run_build(
    name: str,
    params: dict,
    flags: BuildFlags,
    root: Path,
    registry: TaskRegistry | None = None,
    notifier: Notifier | None = None,
) -> None:
    """Run `name` to completion on a fresh event loop.

    When the run fails, watchers and the server are told to stop and the loop
    stays up until every task still in flight has settled.
    """
    registry = registry or build_registry(flags)
    runner = TaskRunner(registry, params=params, flags=flags, notifier=notifier, root=root)
    asyncio.run(_run_and_settle(runner, name))


async def _run_and_settle(runner: TaskRunner, name: str) -> None:
    try:
        await runner.run(name)
    except BaseException:
        runner.stop()
        raise
    finally:
        await runner.join()


def _needs_reload_hub(registry: TaskRegistry, name: str) -> bool:
    seen: set[str] = set()
    stack = [name]
    while stack:
        n = stack.pop()
        if n in seen or n not in registry:
            continue
        seen.add(n)
        if n == "server":
            return True
        stack.extend(registry.resolve(n).children)
    return False


@app.command("list")
def list_tasks(
    prod: bool = typer.Option(False, "--prod", help="Show the production build graph"),
):
    """List registered tasks."""
    registry = build_registry(BuildFlags(prod=prod))
    if not len(registry):
        typer.echo("No tasks registered.")
        raise typer.Exit(code=0)
    typer.echo("Registered tasks:")
    for spec in registry:
        if spec.kind is Kind.COMPOSITE:
            typer.echo(f"- {spec.name} ({spec.mode.value}: {', '.join(spec.children)})")
        elif spec.description:
            typer.echo(f"- {spec.name}: {spec.description}")
        else:
            typer.echo(f"- {spec.name}")


@app.command()
def run(
    name: str = typer.Argument("default", help="Task name to run"),
    prod: bool = typer.Option(False, "--prod", help="Production build (minified output)"),
    config: str = typer.Option("configs/base.yaml", help="Path to YAML config"),
    root: str = typer.Option(".", help="Project directory all paths are relative to"),
    log_file: str = typer.Option("", help="Also write logs to this file"),
):
    """Run a task and everything it depends on."""
    root_path = Path(root)
    load_dotenv(root_path / ".env", override=False)
    apply_env_level()
    if log_file:
        get_logger("docbuild", Path(log_file))
    flags = BuildFlags(prod=prod)
    params = load_config(root_path / config if not Path(config).is_absolute() else config)

    registry = build_registry(flags)
    notifier = None
    try:
        if _needs_reload_hub(registry, name):
            from .server import ReloadHub

            notifier = ReloadHub()
        run_build(name, params, flags, root_path, registry=registry, notifier=notifier)
    except BuildError as e:
        log.error("%s", e)
        raise typer.Exit(code=1)
    except KeyboardInterrupt:
        raise typer.Exit(code=130)


def main():  # pragma: no cover
    app()


if __name__ == "__main__":  # pragma: no cover
    main()
