#!/usr/bin/env python3
from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from quire.checksum import compute_checksum
from quire.content import assemble_content, export_content
from quire.cover import read_cover
from quire.env import log_level
from quire.errors import QuireError
from quire.fonts import extract_fonts
from quire.metadata import extract_metadata
from quire.storage import store_cover_to_disk, store_metadata_to_disk


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Extract metadata, reading content, covers and fonts from EPUB files."
    )
    sub = parser.add_subparsers(dest="command", required=True)

    meta = sub.add_parser("meta", help="Print the metadata record as JSON")
    meta.add_argument("input", help="Input EPUB file path")
    meta.add_argument("--sidecar", action="store_true", help="Also write <name>.json beside the EPUB")
    meta.add_argument("--cover-dir", help="Export the cover image into this directory")

    content = sub.add_parser("content", help="Print the assembled HTML content")
    content.add_argument("input", help="Input EPUB file path")
    content.add_argument("-o", "--output-dir", help="Write extracted_content.html here instead of stdout")

    cover = sub.add_parser("cover", help="Write the cover image bytes")
    cover.add_argument("input", help="Input EPUB file path")
    cover.add_argument("-o", "--output", required=True, help="Output image file path")

    fonts = sub.add_parser("fonts", help="Extract embedded fonts")
    fonts.add_argument("input", help="Input EPUB file path")
    fonts.add_argument("output_dir", help="Directory receiving the font files")

    checksum = sub.add_parser("checksum", help="Print the SHA-256 checksum of the file")
    checksum.add_argument("input", help="Input file path")
    return parser.parse_args(argv)


def _run_meta(args: argparse.Namespace) -> int:
    meta = extract_metadata(args.input)
    record = meta.sidecar_dict()
    if args.sidecar:
        record["sidecar"] = str(store_metadata_to_disk(meta))
    if args.cover_dir and meta.cover_data is not None:
        record["cover_file"] = str(store_cover_to_disk(meta.cover_data, Path(args.input).stem, args.cover_dir))
    print(json.dumps(record, ensure_ascii=False, indent=2))
    return 0


def _run_content(args: argparse.Namespace) -> int:
    if args.output_dir:
        output_path = export_content(args.input, args.output_dir)
        print(f"Content saved to: {output_path}")
        return 0
    sys.stdout.write(assemble_content(args.input))
    return 0


def _run_cover(args: argparse.Namespace) -> int:
    data, media_type = read_cover(args.input)
    if not data:
        print(f"No cover image declared in {args.input}", file=sys.stderr)
        return 1
    output_path = Path(args.output)
    output_path.write_bytes(data)
    print(f"Cover ({media_type}) saved to: {output_path}")
    return 0


def _run_fonts(args: argparse.Namespace) -> int:
    written = extract_fonts(args.input, args.output_dir)
    for font_path in written:
        print(font_path)
    if not written:
        print(f"No fonts found in {args.input}", file=sys.stderr)
    return 0


def _run_checksum(args: argparse.Namespace) -> int:
    print(compute_checksum(args.input))
    return 0


COMMANDS = {
    "meta": _run_meta,
    "content": _run_content,
    "cover": _run_cover,
    "fonts": _run_fonts,
    "checksum": _run_checksum,
}


def main(argv: list[str]) -> int:
    args = parse_args(argv)
    logging.basicConfig(level=log_level(), format="%(levelname)s %(name)s: %(message)s")
    try:
        return COMMANDS[args.command](args)
    except (QuireError, OSError) as exc:
        print(f"{args.command} failed: {exc}", file=sys.stderr)
        return 1


def cli() -> int:
    return main(sys.argv[1:])


if __name__ == "__main__":
    raise SystemExit(cli())
