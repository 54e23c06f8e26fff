"""Tests for the pdf_tools command-line entry point."""

import io
from pathlib import Path

import pytest
from docx import Document
from PIL import Image

from conftest import page_rotations, page_widths
from pdf_tools import ProgressPrinter, main, parse_args
from pdf_toolbox.session import DocumentCompleted, DocumentStarted, PageProgress


def run(*argv) -> int:
    with pytest.raises(SystemExit) as info:
        main([str(a) for a in argv])
    return info.value.code


class TestParseArgs:
    def test_compress_defaults(self, pdf_file):
        args = parse_args(["compress", str(pdf_file)])
        assert args.level == "normal"
        assert args.workers == 1
        assert args.output_dir == Path(".")

    def test_unknown_level_rejected(self, pdf_file):
        with pytest.raises(SystemExit):
            parse_args(["compress", str(pdf_file), "--level", "maximum"])


class TestProgressPrinter:
    def test_bar_per_document(self):
        stream = io.StringIO()
        printer = ProgressPrinter(stream)
        printer(DocumentStarted(0, "scan.pdf"))
        printer(PageProgress(0, 1, 2))
        printer(PageProgress(0, 2, 2))
        printer(DocumentCompleted(0, "scan.pdf"))

        lines = stream.getvalue().split("\r")
        assert lines[1].startswith("scan.pdf [" + "#" * 15 + "." * 15 + "] page 1/2")
        assert lines[2] == "scan.pdf [" + "#" * 30 + "] page 2/2\n"


class TestCommands:
    def test_compress(self, pdf_file, tmp_path):
        out = tmp_path / "out"
        assert run("compress", pdf_file, "--level", "extreme", "--output-dir", out) == 0
        assert page_widths((out / "compressed-report.pdf").read_bytes()) == [100, 150, 200]

    def test_compress_failed_file_sets_status(self, pdf_file, tmp_path):
        broken = tmp_path / "broken.pdf"
        broken.write_bytes(b"%PDF-1.4 truncated")
        out = tmp_path / "out"
        assert run("compress", broken, pdf_file, "--output-dir", out) == 1
        assert [p.name for p in out.iterdir()] == ["compressed-report.pdf"]

    def test_no_valid_inputs(self, tmp_path):
        text_file = tmp_path / "notes.txt"
        text_file.write_text("hello")
        assert run("compress", text_file) == 1

    def test_merge(self, pdf_file, pdf_factory, tmp_path):
        second = tmp_path / "second.pdf"
        second.write_bytes(pdf_factory((500, 300)))
        output = tmp_path / "merged.pdf"
        assert run("merge", pdf_file, second, "-o", output) == 0
        assert page_widths(output.read_bytes()) == [200, 300, 400, 500]

    def test_merge_single_file(self, pdf_file, tmp_path):
        assert run("merge", pdf_file, "-o", tmp_path / "merged.pdf") == 1

    def test_split_ranges(self, pdf_file, tmp_path):
        assert run("split", pdf_file, "--mode", "ranges", "--ranges", "1-2,3",
                   "--output-dir", tmp_path / "parts") == 0
        names = sorted(p.name for p in (tmp_path / "parts").iterdir())
        assert names == ["report_pages_1-2.pdf", "report_pages_3-3.pdf"]

    def test_rotate(self, pdf_file, tmp_path):
        assert run("rotate", pdf_file, "--angle", "-90", "--pages", "1",
                   "--output-dir", tmp_path) == 0
        assert page_rotations((tmp_path / "rotated-report.pdf").read_bytes()) == [270, 0, 0]

    def test_rotate_keeps_files_that_have_the_pages(self, pdf_factory, tmp_path):
        big = tmp_path / "big.pdf"
        big.write_bytes(pdf_factory(*[(200, 300)] * 6))
        small = tmp_path / "small.pdf"
        small.write_bytes(pdf_factory((200, 300), (300, 300)))
        out = tmp_path / "out"

        assert run("rotate", big, small, "--angle", "90", "--pages", "5", "--output-dir", out) == 1

        assert sorted(p.name for p in out.iterdir()) == ["rotated-big.pdf"]
        assert page_rotations((out / "rotated-big.pdf").read_bytes()) == [0, 0, 0, 0, 90, 0]

    def test_rotate_invalid_angle(self, pdf_file, tmp_path):
        assert run("rotate", pdf_file, "--angle", "45", "--output-dir", tmp_path) == 1

    def test_organize(self, pdf_file, pdf_factory, tmp_path):
        extra = tmp_path / "extra.pdf"
        extra.write_bytes(pdf_factory((500, 300), (600, 300)))
        output = tmp_path / "organized.pdf"
        assert run("organize", pdf_file, "--order", "3,2,1", "--delete", "2",
                   "--rotate", "3:180", "--append", extra, "-o", output) == 0
        data = output.read_bytes()
        assert page_widths(data) == [400, 200, 500, 600]
        assert page_rotations(data) == [180, 0, 0, 0]

    def test_organize_bad_rotation(self, pdf_file, tmp_path):
        assert run("organize", pdf_file, "--rotate", "two:90",
                   "-o", tmp_path / "o.pdf") == 1

    def test_word(self, pdf_file, tmp_path):
        assert run("word", pdf_file, "--output-dir", tmp_path) == 0
        document = Document(str(tmp_path / "report.docx"))
        assert len(document.inline_shapes) == 3
        assert "Page 3 of 3" in (tmp_path / "report.html").read_text(encoding="utf-8")

    def test_preview(self, pdf_file, tmp_path):
        assert run("preview", pdf_file, "--pages", "2", "--rotation", "90",
                   "--output-dir", tmp_path) == 0
        with Image.open(io.BytesIO((tmp_path / "report_preview_2.png").read_bytes())) as image:
            assert image.size == (150, 150)
