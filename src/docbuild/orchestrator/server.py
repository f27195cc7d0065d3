"""Local preview server with live reload."""

from __future__ import annotations

import asyncio
import webbrowser
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Optional, Set

import uvicorn
from fastapi import FastAPI, Request, WebSocket, WebSocketDisconnect
from fastapi.responses import Response
from fastapi.staticfiles import StaticFiles

from .logging import get_logger


RELOAD_ENDPOINT = "/__livereload"

RELOAD_CLIENT = f"""<script>
(function () {{
  var proto = location.protocol === "https:" ? "wss" : "ws";
  var ws = new WebSocket(proto + "://" + location.host + "{RELOAD_ENDPOINT}");
  ws.onmessage = function (ev) {{ if (ev.data === "reload") location.reload(); }};
}})();
</script>
"""


def rewrite_path(path: str, prefix: str = "/alder/") -> str:
    """Strip the site base path: `/alder/x` -> `/x`, `//x` -> `/x`."""
    if prefix and path.startswith(prefix):
        path = path[len(prefix):]
    return "/" + path.lstrip("/")


def inject_reload_client(body: bytes) -> bytes:
    marker = b"</body>"
    idx = body.lower().rfind(marker)
    script = RELOAD_CLIENT.encode("utf-8")
    if idx == -1:
        return body + script
    return body[:idx] + script + body[idx:]


class ReloadHub:
    """Live-reload notifier: tells every connected page to reload.

    `reload()` never waits for clients and is a no-op when none are connected.
    """

    def __init__(self) -> None:
        self.clients: Set[WebSocket] = set()
        self._sends: Set[asyncio.Task] = set()
        self.logger = get_logger("docbuild.reload")

    async def connect(self, websocket: WebSocket) -> None:
        await websocket.accept()
        self.clients.add(websocket)

    def disconnect(self, websocket: WebSocket) -> None:
        self.clients.discard(websocket)

    def reload(self) -> None:
        if not self.clients:
            self.logger.debug("Reload requested, no clients connected")
            return
        self.logger.info("Reloading %d client(s)", len(self.clients))
        for ws in list(self.clients):
            t = asyncio.ensure_future(self._send(ws))
            self._sends.add(t)
            t.add_done_callback(self._sends.discard)

    async def _send(self, websocket: WebSocket) -> None:
        try:
            await websocket.send_text("reload")
        except Exception:  # noqa: BLE001
            # Gone without a close frame
            self.disconnect(websocket)


@dataclass
class ServeOptions:
    port: int = 2643
    host: str = "127.0.0.1"
    base_path: str = "/alder/"
    open_browser: bool = False
    rewrite: Optional[Callable[[str], str]] = field(default=None, repr=False)

    def rewriter(self) -> Callable[[str], str]:
        if self.rewrite is not None:
            return self.rewrite
        return lambda path: rewrite_path(path, self.base_path)

    @property
    def start_url(self) -> str:
        return f"http://{self.host}:{self.port}{self.base_path}"


def create_app(
    directory: Path | str, options: ServeOptions, hub: ReloadHub | None = None
) -> FastAPI:
    app = FastAPI(docs_url=None, redoc_url=None, openapi_url=None)
    rewrite = options.rewriter()

    if hub is not None:

        @app.websocket(RELOAD_ENDPOINT)
        async def livereload(websocket: WebSocket) -> None:
            await hub.connect(websocket)
            try:
                while True:
                    await websocket.receive_text()
            except WebSocketDisconnect:
                hub.disconnect(websocket)

    @app.middleware("http")
    async def rewrite_request(request: Request, call_next):
        request.scope["path"] = rewrite(request.scope["path"])
        response = await call_next(request)
        is_html = response.headers.get("content-type", "").startswith("text/html")
        if hub is None or not is_html or request.method == "HEAD":
            return response
        body = b"".join([chunk async for chunk in response.body_iterator])
        headers = {
            k: v for k, v in response.headers.items() if k.lower() != "content-length"
        }
        return Response(
            content=inject_reload_client(body),
            status_code=response.status_code,
            headers=headers,
        )

    app.mount("/", StaticFiles(directory=str(directory), html=True), name="site")
    return app


async def serve(
    directory: Path | str,
    options: ServeOptions,
    hub: ReloadHub | None = None,
    stop: asyncio.Event | None = None,
) -> None:
    """Serve `directory` until `stop` is set or the task is cancelled."""
    logger = get_logger("docbuild.server")
    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)
    app = create_app(directory, options, hub)
    config = uvicorn.Config(
        app,
        host=options.host,
        port=options.port,
        log_level="warning",
        lifespan="off",
    )
    server = uvicorn.Server(config)
    logger.info("Serving %s at %s", directory, options.start_url)
    if options.open_browser:
        asyncio.get_running_loop().call_later(0.5, webbrowser.open, options.start_url)

    async def _shutdown_on_stop() -> None:
        await stop.wait()
        server.should_exit = True

    stopper = asyncio.create_task(_shutdown_on_stop()) if stop is not None else None
    try:
        await server.serve()
    except SystemExit as e:
        # uvicorn exits the process when it cannot bind
        raise OSError(f"Could not serve on {options.host}:{options.port}") from e
    finally:
        if stopper is not None:
            stopper.cancel()
