# tests/test_server.py

from __future__ import annotations

import asyncio

import pytest
from fastapi.testclient import TestClient

from docbuild.orchestrator.server import (
    RELOAD_ENDPOINT,
    ReloadHub,
    ServeOptions,
    create_app,
    inject_reload_client,
    rewrite_path,
    serve,
)


def test_rewrite_path_strips_base_path() -> None:
    assert rewrite_path("/alder/") == "/"
    assert rewrite_path("/alder/guide/") == "/guide/"
    assert rewrite_path("/alder/styles/app.css") == "/styles/app.css"
    assert rewrite_path("///x") == "/x"
    assert rewrite_path("/other/x") == "/other/x"
    assert rewrite_path("/docs/a", prefix="/docs/") == "/a"


def test_inject_reload_client_before_body_end() -> None:
    out = inject_reload_client(b"<html><body><p>x</p></body></html>")
    assert out.endswith(b"</script>\n</body></html>")
    assert RELOAD_ENDPOINT.encode() in out
    assert inject_reload_client(b"<p>x</p>").startswith(b"<p>x</p><script>")


@pytest.fixture()
def site(tmp_path):
    (tmp_path / "guide").mkdir()
    (tmp_path / "index.html").write_text("<html><body>home</body></html>")
    (tmp_path / "guide" / "index.html").write_text("<html><body>guide</body></html>")
    (tmp_path / "404.html").write_text("<html><body>missing</body></html>")
    (tmp_path / "app.css").write_text("body{}")
    return tmp_path


def test_serves_files_under_base_path(site) -> None:
    client = TestClient(create_app(site, ServeOptions(), hub=ReloadHub()))

    r = client.get("/alder/")
    assert r.status_code == 200
    assert "home" in r.text
    assert RELOAD_ENDPOINT in r.text

    r = client.get("/alder/guide/")
    assert r.status_code == 200
    assert "guide" in r.text

    r = client.get("/alder/app.css")
    assert r.text == "body{}"

    r = client.get("/alder/nope/")
    assert r.status_code == 404
    assert "missing" in r.text


def test_no_script_without_hub(site) -> None:
    client = TestClient(create_app(site, ServeOptions()))
    r = client.get("/alder/")
    assert r.status_code == 200
    assert RELOAD_ENDPOINT not in r.text


def test_custom_rewrite(site) -> None:
    options = ServeOptions(rewrite=lambda path: "/guide/" if path == "/g" else path)
    client = TestClient(create_app(site, options))
    assert "guide" in client.get("/g").text


def test_start_url() -> None:
    assert ServeOptions(port=9000).start_url == "http://127.0.0.1:9000/alder/"


def test_reload_without_clients_is_a_no_op() -> None:
    hub = ReloadHub()
    hub.reload()
    assert hub.clients == set()


def test_reload_reaches_connected_browser(site) -> None:
    hub = ReloadHub()
    with TestClient(create_app(site, ServeOptions(), hub=hub)) as client:
        with client.websocket_connect(RELOAD_ENDPOINT) as ws:
            # Runs on the app's event loop, like the watcher would
            client.portal.call(_reload_soon, hub)
            assert ws.receive_text() == "reload"


async def _reload_soon(hub: ReloadHub) -> None:
    for _ in range(100):
        if hub.clients:
            break
        await asyncio.sleep(0.01)
    hub.reload()


@pytest.mark.asyncio
async def test_serve_returns_when_stopped(tmp_path) -> None:
    stop = asyncio.Event()
    serving = asyncio.create_task(
        serve(tmp_path / "site", ServeOptions(port=0), stop=stop)
    )
    await asyncio.sleep(0.3)
    assert not serving.done()

    stop.set()
    await asyncio.wait_for(serving, timeout=5.0)
    assert (tmp_path / "site").is_dir()
