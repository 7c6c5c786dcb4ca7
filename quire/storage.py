from __future__ import annotations

import json
from pathlib import Path
from typing import Optional, Union

from .env import COVERS_DIR_ENV, read_env
from .metadata import BookMetadata, CoverData

SIDECAR_SUFFIX = ".json"
DEFAULT_COVERS_DIRNAME = "covers"
DEFAULT_COVER_STEM = "cover"
COVER_EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/jpg": "jpg",
    "image/png": "png",
    "image/gif": "gif",
    "image/webp": "webp",
    "image/svg+xml": "svg",
}


def covers_dir() -> Path:
    env = read_env(COVERS_DIR_ENV)
    return Path(env) if env else Path.cwd() / DEFAULT_COVERS_DIRNAME


def sidecar_path(epub_file: Union[str, Path]) -> Path:
    return Path(epub_file).with_suffix(SIDECAR_SUFFIX)


def sanitize_filename(filename: str) -> str:
    return "".join(char for char in filename or "" if char.isalnum() or char in "._-")


def cover_extension(media_type: Optional[str]) -> str:
    normalized = (media_type or "").split(";", 1)[0].strip().lower()
    return COVER_EXTENSIONS.get(normalized, "jpg")


def _write_json(path: Path, data: dict) -> None:
    path.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")


def store_metadata_to_disk(metadata: BookMetadata) -> Path:
    """Write the metadata record beside the source EPUB as ``<name>.json``.

    Cover bytes are left out; the file only records whether a cover exists.
    """
    path = sidecar_path(metadata.file_path)
    _write_json(path, metadata.sidecar_dict())
    return path


def load_sidecar(epub_file: Union[str, Path]) -> dict:
    return json.loads(sidecar_path(epub_file).read_text(encoding="utf-8"))


def store_cover_to_disk(
    cover: CoverData,
    base_filename: str,
    target_dir: Union[str, Path, None] = None,
) -> Path:
    stem = sanitize_filename(base_filename) or DEFAULT_COVER_STEM
    directory = Path(target_dir) if target_dir is not None else covers_dir()
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / f"{stem}.{cover_extension(cover.mime_type)}"
    path.write_bytes(cover.data)
    return path
