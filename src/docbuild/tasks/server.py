from __future__ import annotations

from ..orchestrator import task
from ..orchestrator.runner import TaskContext
from ..orchestrator.server import ReloadHub, ServeOptions, serve
from ..orchestrator.utils import base_path, open_browser, output, server_host, server_port


@task(name="server")
async def serve_site(ctx: TaskContext) -> None:
    """Serve the generated site locally with live reload."""
    options = ServeOptions(
        port=server_port(ctx.params),
        host=server_host(ctx.params),
        base_path=base_path(ctx.params),
        open_browser=open_browser(ctx.params),
    )
    hub = ctx.notifier if isinstance(ctx.notifier, ReloadHub) else None
    await serve(
        ctx.root / output(ctx.params, "doc_html"),
        options,
        hub=hub,
        stop=ctx.runner.stopping,
    )
