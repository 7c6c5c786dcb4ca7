from __future__ import annotations

import logging
import re
from pathlib import Path, PurePosixPath
from typing import Union

from .container import Resource, open_container
from .errors import ResourceError

logger = logging.getLogger("quire.fonts")


def _safe_font_name(filename: str) -> str:
    cleaned = re.sub(r"[^0-9A-Za-z._-]+", "_", filename or "").strip("._")
    return cleaned


def _fallback_font_name(resource: Resource, taken: set[str]) -> str:
    suffix = PurePosixPath(resource.href).suffix
    if not re.fullmatch(r"\.[0-9A-Za-z]+", suffix or ""):
        suffix = ""
    stem = f"font_{_safe_font_name(resource.id) or 'resource'}"
    candidate = f"{stem}{suffix}"
    counter = 2
    while candidate.lower() in taken:
        candidate = f"{stem}_{counter}{suffix}"
        counter += 1
    return candidate


def extract_fonts(path: Union[str, Path], output_dir: Union[str, Path]) -> list[Path]:
    """Write every font resource of the EPUB into ``output_dir``.

    Fonts keep their archive file name when it is usable and not already taken
    in this run; otherwise they are named after their manifest id.
    """
    target_dir = Path(output_dir)
    target_dir.mkdir(parents=True, exist_ok=True)
    written: list[Path] = []
    taken: set[str] = set()
    with open_container(path) as container:
        for resource in container.fonts():
            try:
                payload = container.read_bytes(resource)
            except ResourceError as exc:
                logger.warning("%s: skipping unreadable font %s: %s", container.path, resource.href, exc)
                continue
            name = _safe_font_name(PurePosixPath(resource.href).name)
            if not name or name.lower() in taken:
                name = _fallback_font_name(resource, taken)
            taken.add(name.lower())
            font_path = target_dir / name
            font_path.write_bytes(payload)
            written.append(font_path)
    return written
