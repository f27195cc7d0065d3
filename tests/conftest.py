# tests/conftest.py

from __future__ import annotations

from pathlib import Path

import pytest

from .fakes import FakeNotifier, Recorder


@pytest.fixture()
def recorder() -> Recorder:
    return Recorder()


@pytest.fixture()
def notifier() -> FakeNotifier:
    return FakeNotifier()


@pytest.fixture()
def project(tmp_path: Path) -> Path:
    """
    A small project tree laid out like the default config expects.

    Only plain files; external tools are replaced per test through `params`.
    """
    (tmp_path / "lib").mkdir()
    (tmp_path / "lib" / "alder.js").write_text(
        "// Alder\nfunction add (a, b) {\n  return a + b\n}\n", encoding="utf-8"
    )
    (tmp_path / "lib" / "util").mkdir()
    (tmp_path / "lib" / "util" / "seq.js").write_text(
        "function first (xs) {\n  return xs[0]\n}\n", encoding="utf-8"
    )

    html = tmp_path / "docs" / "html"
    (html / "_layouts").mkdir(parents=True)
    (html / "_layouts" / "base.html").write_text(
        "<html><body>{% block body %}{% endblock %}"
        "{% if prod %}<!-- prod -->{% endif %}</body></html>\n",
        encoding="utf-8",
    )
    (html / "index.html").write_text(
        '{% extends "_layouts/base.html" %}{% block body %}<h1>Alder</h1>{% endblock %}\n',
        encoding="utf-8",
    )
    (html / "404.html").write_text("<p>Not found</p>\n", encoding="utf-8")
    (html / "guide.md").write_text(
        "# Guide\n\n```js\nconst x = 1\n```\n", encoding="utf-8"
    )
    (html / "api").mkdir()
    (html / "api" / "index.html").write_text("<p>API</p>\n", encoding="utf-8")
    (html / "logo.svg").write_text("<svg/>", encoding="utf-8")

    (tmp_path / "docs" / "scripts").mkdir(parents=True)
    (tmp_path / "docs" / "scripts" / "app.js").write_text(
        "// docs app\nvar greeting = 'hello'\nconsole.log(greeting)\n", encoding="utf-8"
    )
    (tmp_path / "docs" / "styles").mkdir(parents=True)
    (tmp_path / "docs" / "styles" / "_vars.scss").write_text(
        "$accent: #123456;\n", encoding="utf-8"
    )
    (tmp_path / "docs" / "styles" / "app.scss").write_text(
        '@import "vars";\nbody {\n  a { color: $accent; }\n}\n', encoding="utf-8"
    )

    fonts = tmp_path / "node_modules" / "font-awesome" / "fonts"
    fonts.mkdir(parents=True)
    (fonts / "fa.woff").write_bytes(b"\x00woff")
    return tmp_path
