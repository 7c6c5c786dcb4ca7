from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import NamedTuple, Optional, Union

from .checksum import compute_checksum
from .container import Container, open_container
from .errors import ResourceError

UNKNOWN_TITLE = "Unknown Title"
UNKNOWN_AUTHOR = "Unknown Author"
UNKNOWN_PUBLISHER = "Unknown Publisher"
ISBN_URN_PREFIX = "urn:isbn:"

logger = logging.getLogger("quire.metadata")


class CoverData(NamedTuple):
    data: bytes
    mime_type: str


@dataclass(frozen=True)
class BookMetadata:
    title: str
    authors: tuple[str, ...]
    publishers: tuple[str, ...]
    published_date: Optional[str]
    isbn: Optional[str]
    file_path: str
    cover_data: Optional[CoverData]
    checksum: str

    @property
    def has_cover(self) -> bool:
        return self.cover_data is not None

    def to_dict(self) -> dict:
        cover = None
        if self.cover_data is not None:
            cover = {"data": self.cover_data.data, "mime_type": self.cover_data.mime_type}
        return {
            "title": self.title,
            "authors": list(self.authors),
            "published_date": self.published_date,
            "publishers": list(self.publishers),
            "isbn": self.isbn,
            "file_path": self.file_path,
            "cover_data": cover,
            "checksum": self.checksum,
        }

    def sidecar_dict(self) -> dict:
        return {
            "title": self.title,
            "authors": list(self.authors),
            "publishers": list(self.publishers),
            "published_date": self.published_date,
            "isbn": self.isbn,
            "file_path": self.file_path,
            "checksum": self.checksum,
            "has_cover": self.has_cover,
        }


def _values(container: Container, name: str) -> list[str]:
    return [value.strip() for value, _ in container.metadata_values(name) if value and value.strip()]


def _published_date(container: Container) -> Optional[str]:
    dates = [(value.strip(), attrs) for value, attrs in container.metadata_values("date") if value and value.strip()]
    for value, attrs in dates:
        if str(attrs.get("event") or "").strip().lower() == "publication":
            return value
    return dates[0][0] if dates else None


def _isbn(container: Container) -> Optional[str]:
    for value in _values(container, "identifier"):
        if value.lower().startswith(ISBN_URN_PREFIX):
            return value
    return None


def _cover_data(container: Container) -> Optional[CoverData]:
    cover = container.cover_image()
    if cover is None:
        return None
    try:
        payload = container.read_bytes(cover)
    except ResourceError as exc:
        logger.warning("cover %s in %s is unreadable: %s", cover.href, container.path, exc)
        return None
    return CoverData(payload, cover.media_type)


def read_container_metadata(container: Container, checksum: str) -> BookMetadata:
    titles = _values(container, "title")
    authors = _values(container, "creator") or [UNKNOWN_AUTHOR]
    publishers = _values(container, "publisher") or [UNKNOWN_PUBLISHER]
    return BookMetadata(
        title=titles[0] if titles else UNKNOWN_TITLE,
        authors=tuple(authors),
        publishers=tuple(publishers),
        published_date=_published_date(container),
        isbn=_isbn(container),
        file_path=str(container.path),
        cover_data=_cover_data(container),
        checksum=checksum,
    )


def extract_metadata(path: Union[str, Path]) -> BookMetadata:
    """Read the package metadata of the EPUB at ``path``.

    The container is opened first so a missing or broken file surfaces as
    ``ContainerOpenError``; the checksum covers the raw file bytes.
    """
    with open_container(path) as container:
        checksum = compute_checksum(container.path)
        return read_container_metadata(container, checksum)
