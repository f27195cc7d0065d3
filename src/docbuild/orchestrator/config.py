from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import yaml

from .logging import get_logger


log = get_logger("docbuild.config")


@dataclass(frozen=True)
class BuildFlags:
    """Flags resolved once from the command line and read by tasks."""

    prod: bool = False


def load_config(path: str | Path) -> dict:
    p = Path(path)
    if not p.exists():
        log.warning("Config %s not found; using built-in defaults", p)
        return {}
    with open(p, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}
