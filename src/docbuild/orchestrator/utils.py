from __future__ import annotations

"""Small helpers for reading paths and settings from config params."""

import fnmatch
import re
from pathlib import PurePosixPath
from typing import Dict, List


SOURCES = {
    "lib": "lib/**/*.js",
    "dist": "dist/**/*.js",
    "doc_html": "docs/html/**/*",
    "doc_scripts": "docs/scripts/**/*.js",
    "doc_scripts_main": "docs/scripts/app.js",
    "doc_styles": "docs/styles/**/*.scss",
    "doc_styles_main": "docs/styles/app.scss",
    "doc_fonts": "node_modules/font-awesome/fonts/**/*",
}

OUTPUTS = {
    "lib": "dist",
    "doc_html": "gh-pages",
    "doc_scripts": "gh-pages/scripts",
    "doc_styles": "gh-pages/styles",
    "doc_fonts": "gh-pages/fonts",
}

_MAGIC = re.compile(r"[*?\[]")


def _get(d: Dict, *keys, default=None):
    cur = d
    for k in keys:
        if not isinstance(cur, dict):
            return default
        cur = cur.get(k)
        if cur is None:
            return default
    return cur


def source(p: Dict, key: str) -> str:
    return _get(p, "paths", "src", key, default=SOURCES[key])


def output(p: Dict, key: str) -> str:
    return _get(p, "paths", "out", key, default=OUTPUTS[key])


def server_port(p: Dict) -> int:
    return int(_get(p, "server", "port", default=2643))


def server_host(p: Dict) -> str:
    return _get(p, "server", "host", default="127.0.0.1")


def base_path(p: Dict) -> str:
    return _get(p, "server", "base_path", default="/alder/")


def open_browser(p: Dict) -> bool:
    return bool(_get(p, "server", "open_browser", default=False))


def command(p: Dict, *keys) -> List[str]:
    """Command line for an external tool; an empty list means "not configured"."""
    cmd = _get(p, "commands", *keys, default=None)
    if not cmd:
        return []
    if isinstance(cmd, str):
        return cmd.split()
    return [str(c) for c in cmd]


def fill_command(cmd: List[str], **values: str) -> List[str]:
    return [part.format(**values) for part in cmd]


def glob_base(pattern: str) -> str:
    """Leading directories of `pattern` that contain no wildcard."""
    parts = PurePosixPath(pattern).parts
    base: List[str] = []
    for part in parts:
        if _MAGIC.search(part):
            break
        base.append(part)
    else:
        # No wildcard at all: the pattern names a single file
        base = base[:-1]
    return str(PurePosixPath(*base)) if base else "."


def glob_match(path: str, pattern: str) -> bool:
    """fnmatch where `**/` also matches zero directories."""
    path = path.replace("\\", "/")
    if path.startswith("./"):
        path = path[2:]
    if fnmatch.fnmatchcase(path, pattern):
        return True
    return "**/" in pattern and fnmatch.fnmatchcase(path, pattern.replace("**/", ""))
