"""Async entry points for request handlers.

Every call runs the blocking extraction in Starlette's worker thread pool so the
event loop keeps serving other requests. Each call opens its own container; no
state is shared between calls.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Union

from starlette.concurrency import run_in_threadpool

from . import checksum, content, cover, fonts, metadata, storage
from .metadata import BookMetadata, CoverData

PathLike = Union[str, Path]


async def parse_epub_meta(path: PathLike) -> BookMetadata:
    return await run_in_threadpool(metadata.extract_metadata, path)


async def get_epub_content(path: PathLike) -> str:
    return await run_in_threadpool(content.assemble_content, path)


async def get_cover_image(path: PathLike) -> bytes:
    data, _ = await run_in_threadpool(cover.read_cover, path)
    return data


async def compute_file_checksum(path: PathLike) -> str:
    return await run_in_threadpool(checksum.compute_checksum, path)


async def store_metadata_to_disk(book: BookMetadata) -> Path:
    return await run_in_threadpool(storage.store_metadata_to_disk, book)


async def store_cover_to_disk(
    cover_data: CoverData,
    base_filename: str,
    target_dir: Optional[PathLike] = None,
) -> Path:
    return await run_in_threadpool(storage.store_cover_to_disk, cover_data, base_filename, target_dir)


async def extract_fonts_to_disk(path: PathLike, output_dir: PathLike) -> list[Path]:
    return await run_in_threadpool(fonts.extract_fonts, path, output_dir)


async def export_epub_contents_to_disk(path: PathLike, output_dir: PathLike) -> Path:
    return await run_in_threadpool(content.export_content, path, output_dir)
