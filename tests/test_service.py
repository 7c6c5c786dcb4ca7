import asyncio
import tempfile
import unittest
from pathlib import Path

from epub_fixtures import PNG_1X1, write_epub, xhtml
from quire import service
from quire.checksum import compute_checksum
from quire.errors import ContainerOpenError
from quire.metadata import CoverData


def _write_book(output_path: Path, *, cover: bool = True) -> Path:
    manifest = [
        ("c1", "Text/ch1.xhtml", "application/xhtml+xml"),
        ("font", "Fonts/Body.ttf", "font/ttf"),
    ]
    files = {"OEBPS/Text/ch1.xhtml": xhtml("<p>Async</p>"), "OEBPS/Fonts/Body.ttf": b"\x00\x01\x00\x00"}
    if cover:
        manifest.append(("cover", "Images/cover.png", "image/png", "cover-image"))
        files["OEBPS/Images/cover.png"] = PNG_1X1
    return write_epub(
        output_path,
        manifest=manifest,
        spine=["c1"],
        files=files,
        metadata="<dc:title>Async Book</dc:title><dc:creator>Someone</dc:creator>",
    )


class ServiceTests(unittest.TestCase):
    def test_parse_and_content(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            epub_file = _write_book(Path(tmp) / "async.epub")
            meta = asyncio.run(service.parse_epub_meta(epub_file))
            self.assertEqual(meta.title, "Async Book")
            self.assertEqual(meta.checksum, compute_checksum(epub_file))
            self.assertEqual(asyncio.run(service.get_epub_content(epub_file)), "<p>Async</p>")

    def test_concurrent_calls_are_independent(self) -> None:
        async def run_both(path: Path):
            return await asyncio.gather(service.parse_epub_meta(path), service.parse_epub_meta(path))

        with tempfile.TemporaryDirectory() as tmp:
            epub_file = _write_book(Path(tmp) / "async.epub")
            first, second = asyncio.run(run_both(epub_file))
            self.assertEqual(first, second)

    def test_cover_bytes(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            with_cover = _write_book(Path(tmp) / "with.epub")
            without_cover = _write_book(Path(tmp) / "without.epub", cover=False)
            self.assertEqual(asyncio.run(service.get_cover_image(with_cover)), PNG_1X1)
            self.assertEqual(asyncio.run(service.get_cover_image(without_cover)), b"")

    def test_disk_writers(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            epub_file = _write_book(Path(tmp) / "async.epub")
            meta = asyncio.run(service.parse_epub_meta(epub_file))

            sidecar = asyncio.run(service.store_metadata_to_disk(meta))
            self.assertEqual(sidecar, Path(tmp) / "async.json")

            cover_file = asyncio.run(
                service.store_cover_to_disk(CoverData(PNG_1X1, "image/png"), "async", Path(tmp) / "covers")
            )
            self.assertEqual(cover_file.read_bytes(), PNG_1X1)

            font_files = asyncio.run(service.extract_fonts_to_disk(epub_file, Path(tmp) / "fonts"))
            self.assertEqual([p.name for p in font_files], ["Body.ttf"])

            exported = asyncio.run(service.export_epub_contents_to_disk(epub_file, Path(tmp) / "out"))
            self.assertEqual(exported.read_text(encoding="utf-8"), "<p>Async</p>")

            digest = asyncio.run(service.compute_file_checksum(epub_file))
            self.assertEqual(digest, meta.checksum)

    def test_errors_propagate_to_the_caller(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            with self.assertRaises(ContainerOpenError):
                asyncio.run(service.parse_epub_meta(Path(tmp) / "missing.epub"))


if __name__ == "__main__":
    unittest.main()
