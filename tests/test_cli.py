import contextlib
import io
import json
import tempfile
import unittest
from pathlib import Path

from epub_fixtures import PNG_1X1, write_epub, xhtml
from epubdump import main
from quire.checksum import compute_checksum


def _write_book(output_path: Path, *, cover: bool = True) -> Path:
    manifest = [("c1", "ch1.xhtml", "application/xhtml+xml")]
    files = {"OEBPS/ch1.xhtml": xhtml("<p>CLI</p>")}
    if cover:
        manifest.append(("cover", "cover.png", "image/png", "cover-image"))
        files["OEBPS/cover.png"] = PNG_1X1
    return write_epub(
        output_path,
        manifest=manifest,
        spine=["c1"],
        files=files,
        metadata="<dc:title>Command Line</dc:title>",
    )


def _run(argv: list[str]) -> tuple[int, str, str]:
    stdout = io.StringIO()
    stderr = io.StringIO()
    with contextlib.redirect_stdout(stdout), contextlib.redirect_stderr(stderr):
        code = main(argv)
    return code, stdout.getvalue(), stderr.getvalue()


class EpubDumpCliTests(unittest.TestCase):
    def test_checksum(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            epub_file = _write_book(Path(tmp) / "book.epub")
            code, out, _ = _run(["checksum", str(epub_file)])
            self.assertEqual(code, 0)
            self.assertEqual(out.strip(), compute_checksum(epub_file))

    def test_meta_writes_sidecar_and_cover(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            epub_file = _write_book(Path(tmp) / "book.epub")
            code, out, _ = _run(["meta", str(epub_file), "--sidecar", "--cover-dir", str(Path(tmp) / "covers")])
            self.assertEqual(code, 0)
            record = json.loads(out)
            self.assertEqual(record["title"], "Command Line")
            self.assertTrue(record["has_cover"])
            self.assertEqual(Path(record["sidecar"]), Path(tmp) / "book.json")
            self.assertTrue((Path(tmp) / "book.json").is_file())
            self.assertEqual(Path(record["cover_file"]).read_bytes(), PNG_1X1)

    def test_meta_on_missing_file_fails(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            code, _, err = _run(["meta", str(Path(tmp) / "missing.epub")])
            self.assertEqual(code, 1)
            self.assertIn("meta failed", err)

    def test_cover_without_declared_cover_fails(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            epub_file = _write_book(Path(tmp) / "plain.epub", cover=False)
            output = Path(tmp) / "cover.png"
            code, _, err = _run(["cover", str(epub_file), "-o", str(output)])
            self.assertEqual(code, 1)
            self.assertIn("No cover image", err)
            self.assertFalse(output.exists())

    def test_cover_is_written(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            epub_file = _write_book(Path(tmp) / "book.epub")
            output = Path(tmp) / "cover.png"
            code, _, _ = _run(["cover", str(epub_file), "-o", str(output)])
            self.assertEqual(code, 0)
            self.assertEqual(output.read_bytes(), PNG_1X1)

    def test_content_to_stdout_and_directory(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            epub_file = _write_book(Path(tmp) / "book.epub")
            code, out, _ = _run(["content", str(epub_file)])
            self.assertEqual(code, 0)
            self.assertEqual(out, "<p>CLI</p>")

            code, _, _ = _run(["content", str(epub_file), "-o", str(Path(tmp) / "out")])
            self.assertEqual(code, 0)
            self.assertEqual((Path(tmp) / "out" / "extracted_content.html").read_text(encoding="utf-8"), "<p>CLI</p>")


if __name__ == "__main__":
    unittest.main()
