from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Union

from .container import Container, open_container
from .errors import ResourceError

logger = logging.getLogger("quire.cover")


def get_cover_bytes(container: Container) -> bytes:
    """Raw bytes of the declared cover image, or ``b""`` when there is none."""
    cover = container.cover_image()
    if cover is None:
        return b""
    try:
        return container.read_bytes(cover)
    except ResourceError as exc:
        logger.warning("cover %s in %s is unreadable: %s", cover.href, container.path, exc)
        return b""


def read_cover(path: Union[str, Path]) -> tuple[bytes, Optional[str]]:
    with open_container(path) as container:
        data = get_cover_bytes(container)
        if not data:
            return b"", None
        cover = container.cover_image()
        media_type = cover.media_type if cover is not None else ""
        return data, media_type or None
