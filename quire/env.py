from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

COVERS_DIR_ENV = "QUIRE_COVERS_DIR"
LOG_LEVEL_ENV = "QUIRE_LOG_LEVEL"
DEFAULT_LOG_LEVEL = "WARNING"
LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


def read_env(name: str, default: Optional[str] = None) -> Optional[str]:
    value = os.getenv(name)
    if value not in {None, ""}:
        return value

    file_var = os.getenv(f"{name}_FILE")
    if not file_var:
        return default

    try:
        content = Path(file_var).read_text(encoding="utf-8")
    except OSError:
        return default
    return content.rstrip("\r\n")


def log_level() -> str:
    raw = (read_env(LOG_LEVEL_ENV) or "").strip().upper()
    return raw if raw in LOG_LEVELS else DEFAULT_LOG_LEVEL
