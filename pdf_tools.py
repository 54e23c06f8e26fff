#!/usr/bin/env python3
"""
pdf_tools.py - PDF toolbox CLI.

Usage:
    python pdf_tools.py compress scan.pdf --level extreme
    python pdf_tools.py merge a.pdf b.pdf -o merged.pdf
    python pdf_tools.py split report.pdf --mode ranges --ranges 1-3,4-6
    python pdf_tools.py rotate *.pdf --angle 90
    python pdf_tools.py organize report.pdf --order 3,1,2 --delete 2 --rotate 1:90
    python pdf_tools.py ocr scan.pdf --lang eng --lang chi_sim
    python pdf_tools.py word slides.pdf --output-dir ./out/
    python pdf_tools.py preview report.pdf --pages 1-2
"""

import argparse
import logging
import sys
import time
from pathlib import Path

# Add parent to path when running as script
if __name__ == "__main__":
    sys.path.insert(0, str(Path(__file__).parent))

from pdf_toolbox.errors import ToolboxError, UserInputError
from pdf_toolbox.ocr import ocr_pdf
from pdf_toolbox.organize import merge_pdfs, organize_pdf, parse_page_list, plan_layout, rotate_pdf, split_pdf
from pdf_toolbox.pipeline import compress_pdf
from pdf_toolbox.presets import (
    COMPRESSION_PRESETS,
    DEFAULT_COMPRESSION_LEVEL,
    DEFAULT_OCR_LANGUAGES,
    OCR_LANGUAGES,
    CompressionLevel,
)
from pdf_toolbox.rasterize import get_page_count, render_preview
from pdf_toolbox.session import (
    BatchSession,
    DocumentCompleted,
    DocumentFailed,
    DocumentStarted,
    PageProgress,
    run_batch,
)
from pdf_toolbox.utils import (
    filter_pdf_inputs,
    format_file_size,
    merged_name,
    organized_name,
    rotated_name,
    strip_pdf_suffix,
)
from pdf_toolbox.word import pdf_to_word


def setup_logging(verbose: bool = False, quiet: bool = False):
    """Configure logging: toolbox messages on stderr, page detail with -v."""
    if quiet:
        level = logging.WARNING
    else:
        level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(name)s [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S"
    )
    # pikepdf and PIL are chatty at DEBUG
    for name in ("PIL", "pikepdf"):
        logging.getLogger(name).setLevel(max(level, logging.INFO))


def parse_args(argv=None):
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="PDF toolbox: compress, merge, split, rotate, organize, OCR, PDF to Word.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Per-page log output")
    parser.add_argument("-q", "--quiet", action="store_true", help="Only warnings and errors")

    sub = parser.add_subparsers(dest="command", required=True)

    levels = "\n".join(
        f"  {p.level.value:8} {p.label}: {p.description} "
        f"(scale {p.settings.scale}, quality {p.settings.quality})"
        for p in COMPRESSION_PRESETS.values()
    )
    compress = sub.add_parser(
        "compress",
        help="Rasterize every page into a JPEG at a fixed compression level",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=f"Compression levels:\n{levels}",
    )
    compress.add_argument("input", nargs="+", type=Path, help="Input PDF file(s)")
    compress.add_argument(
        "-l", "--level",
        choices=[l.value for l in CompressionLevel],
        default=DEFAULT_COMPRESSION_LEVEL.value,
        help=f"Compression level (default: {DEFAULT_COMPRESSION_LEVEL.value})"
    )
    _add_batch_options(compress)

    merge = sub.add_parser("merge", help="Concatenate PDFs in the given order")
    merge.add_argument("input", nargs="+", type=Path, help="Input PDF files (at least 2)")
    merge.add_argument("-o", "--output", type=Path, help="Output file (default: merged-<timestamp>.pdf)")

    split = sub.add_parser("split", help="Split a PDF into several files")
    split.add_argument("input", type=Path, help="Input PDF file")
    split.add_argument("--mode", choices=["all", "pages", "ranges"], default="all",
                       help="all: one file per page, pages: selected pages, ranges: one file per range")
    split.add_argument("--pages", help='Pages for --mode pages, e.g. "1,3-5"')
    split.add_argument("--ranges", help='Ranges for --mode ranges, e.g. "1-3,4-6"')
    split.add_argument("--output-dir", type=Path, default=Path("."), help="Output directory")

    rotate = sub.add_parser("rotate", help="Rotate pages clockwise")
    rotate.add_argument("input", nargs="+", type=Path, help="Input PDF file(s)")
    rotate.add_argument("--angle", type=int, required=True, help="Multiple of 90, negative = counter-clockwise")
    rotate.add_argument("--pages", help='Only rotate these pages, e.g. "1,3-5"')
    rotate.add_argument("--output-dir", type=Path, default=Path("."), help="Output directory")

    organize = sub.add_parser("organize", help="Reorder, delete, rotate and append pages")
    organize.add_argument("input", type=Path, help="Input PDF file")
    organize.add_argument("--order", help='New page order, e.g. "3,1-2"')
    organize.add_argument("--delete", help='Pages to drop, e.g. "4,6"')
    organize.add_argument("--rotate", action="append", default=[], metavar="PAGE:DEG",
                          help="Rotate one page, e.g. 2:90 (repeatable)")
    organize.add_argument("--append", action="append", default=[], type=Path, metavar="PDF",
                          help="Append all pages of another PDF (repeatable)")
    organize.add_argument("-o", "--output", type=Path, help="Output file (default: organized-<name>)")

    ocr = sub.add_parser("ocr", help="Extract text with Tesseract OCR")
    ocr.add_argument("input", nargs="+", type=Path, help="Input PDF file(s)")
    ocr.add_argument("--lang", action="append", choices=list(OCR_LANGUAGES), dest="languages",
                     help=f"OCR language (repeatable, default: {'+'.join(DEFAULT_OCR_LANGUAGES)})")
    ocr.add_argument("--binarize", action="store_true",
                     help="Grayscale + Otsu threshold before OCR (noisy scans)")
    _add_batch_options(ocr)

    word = sub.add_parser("word", help="Convert pages to images in DOCX and HTML")
    word.add_argument("input", nargs="+", type=Path, help="Input PDF file(s)")
    word.add_argument("--no-html", action="store_true", help="Only write the DOCX")
    _add_batch_options(word)

    preview = sub.add_parser("preview", help="Write PNG thumbnails of pages")
    preview.add_argument("input", type=Path, help="Input PDF file")
    preview.add_argument("--pages", help='Pages to render (default: all)')
    preview.add_argument("--rotation", type=int, default=0, help="Extra clockwise rotation")
    preview.add_argument("--output-dir", type=Path, default=Path("."), help="Output directory")

    return parser.parse_args(argv)


def _add_batch_options(parser):
    parser.add_argument("--output-dir", type=Path, default=Path("."), help="Output directory")
    parser.add_argument(
        "--workers",
        type=int,
        default=1,
        help="Parallel page workers per document (default: 1 = sequential)"
    )


class ProgressPrinter:
    """Session listener drawing one progress bar per document on stderr."""

    width = 30

    def __init__(self, stream=None):
        self.stream = stream if stream is not None else sys.stderr
        self.name = ""

    def __call__(self, event):
        if isinstance(event, DocumentStarted):
            self.name = event.name
        elif isinstance(event, PageProgress):
            filled = int(self.width * event.percent / 100)
            bar = "#" * filled + "." * (self.width - filled)
            print(
                f"\r{self.name} [{bar}] page {event.current_page}/{event.total_pages}",
                end="",
                file=self.stream
            )
        elif isinstance(event, DocumentCompleted):
            print(file=self.stream)
        elif isinstance(event, DocumentFailed):
            print(f"\nError: {event.name}: {event.error}", file=self.stream)


def _valid_inputs(paths):
    valid, rejected = filter_pdf_inputs(paths)
    for p in rejected:
        print(f"Warning: Skipping non-PDF or missing file: {p}", file=sys.stderr)
    if not valid:
        raise UserInputError("No valid PDF files")
    return valid


def _run_session(paths, convert, write_outputs) -> int:
    """Run a batch tool over input files; returns the exit status."""
    session = BatchSession()
    for p in _valid_inputs(paths):
        session.add_path(p)
    session.subscribe(ProgressPrinter())

    run_batch(session, convert)

    for entry in session.completed:
        write_outputs(entry)

    print(f"\n{'='*50}")
    print(f"Batch complete: {len(session.completed)}/{len(session.entries)} files")
    return 0 if not session.failed else 1


def cmd_compress(args) -> int:
    args.output_dir.mkdir(parents=True, exist_ok=True)

    def convert(entry, progress):
        return compress_pdf(
            entry.data,
            level=args.level,
            name=entry.name,
            progress_callback=progress,
            max_workers=args.workers
        )

    def write(entry):
        result = entry.result
        (args.output_dir / result.output_name).write_bytes(result.data)
        print(f"\n{result.summary()}")

    return _run_session(args.input, convert, write)


def cmd_ocr(args) -> int:
    args.output_dir.mkdir(parents=True, exist_ok=True)
    languages = args.languages or list(DEFAULT_OCR_LANGUAGES)

    def convert(entry, progress):
        return ocr_pdf(
            entry.data,
            languages=languages,
            threshold=args.binarize,
            name=entry.name,
            progress_callback=progress,
            max_workers=args.workers
        )

    def write(entry):
        result = entry.result
        (args.output_dir / result.output_name).write_bytes(result.data)
        print(f"{entry.name}: {result.pages_ok}/{result.page_count} pages -> {result.output_name}")

    return _run_session(args.input, convert, write)


def cmd_word(args) -> int:
    args.output_dir.mkdir(parents=True, exist_ok=True)

    def convert(entry, progress):
        return pdf_to_word(
            entry.data,
            name=entry.name,
            progress_callback=progress,
            max_workers=args.workers
        )

    def write(entry):
        conversion = entry.result
        (args.output_dir / conversion.result.output_name).write_bytes(conversion.result.data)
        written = [conversion.result.output_name]
        if not args.no_html:
            (args.output_dir / conversion.html_name).write_text(conversion.html, encoding="utf-8")
            written.append(conversion.html_name)
        print(f"{entry.name} -> {', '.join(written)}")

    return _run_session(args.input, convert, write)


def cmd_rotate(args) -> int:
    args.output_dir.mkdir(parents=True, exist_ok=True)

    def convert(entry, progress):
        return rotate_pdf(entry.data, args.angle, pages=args.pages)

    def write(entry):
        output_path = args.output_dir / rotated_name(entry.name)
        output_path.write_bytes(entry.result)
        print(f"{entry.name} -> {output_path}")

    return _run_session(args.input, convert, write)


def cmd_merge(args) -> int:
    inputs = _valid_inputs(args.input)
    output_path = args.output or Path(merged_name(int(time.time() * 1000)))
    data = merge_pdfs([(p.name, p.read_bytes()) for p in inputs])
    output_path.write_bytes(data)
    print(f"Merged {len(inputs)} files -> {output_path} ({format_file_size(len(data))})")
    return 0


def cmd_split(args) -> int:
    input_path = _valid_inputs([args.input])[0]
    args.output_dir.mkdir(parents=True, exist_ok=True)
    parts = split_pdf(
        input_path.read_bytes(),
        name=input_path.name,
        mode=args.mode,
        pages=args.pages,
        ranges=args.ranges
    )
    for part_name, data in parts:
        (args.output_dir / part_name).write_bytes(data)
    print(f"Split {input_path.name} into {len(parts)} files in {args.output_dir}")
    return 0


def _parse_page_rotations(values):
    rotations = {}
    for value in values:
        page, _, degrees = value.partition(":")
        try:
            rotations[int(page)] = int(degrees)
        except ValueError:
            raise UserInputError(f"Invalid --rotate value {value!r}, expected PAGE:DEG") from None
    return rotations


def cmd_organize(args) -> int:
    input_path = _valid_inputs([args.input])[0]
    extras = _valid_inputs(args.append) if args.append else []
    data = input_path.read_bytes()
    extra_data = [p.read_bytes() for p in extras]

    layout = plan_layout(
        get_page_count(data),
        order=args.order,
        deleted=args.delete,
        rotations=_parse_page_rotations(args.rotate),
        extra_page_counts=[get_page_count(d) for d in extra_data]
    )
    output = organize_pdf(data, layout, extra_data)

    output_path = args.output or Path(organized_name(input_path.name))
    output_path.write_bytes(output)
    print(f"Organized {len(layout)} pages -> {output_path}")
    return 0


def cmd_preview(args) -> int:
    input_path = _valid_inputs([args.input])[0]
    args.output_dir.mkdir(parents=True, exist_ok=True)
    data = input_path.read_bytes()
    page_count = get_page_count(data)
    pages = parse_page_list(args.pages, page_count) if args.pages else range(1, page_count + 1)

    base_name = strip_pdf_suffix(input_path.name)
    for page_num in pages:
        output_path = args.output_dir / f"{base_name}_preview_{page_num}.png"
        output_path.write_bytes(render_preview(data, page_num, rotation=args.rotation))
        print(f"Page {page_num} -> {output_path}")
    return 0


COMMANDS = {
    "compress": cmd_compress,
    "merge": cmd_merge,
    "split": cmd_split,
    "rotate": cmd_rotate,
    "organize": cmd_organize,
    "ocr": cmd_ocr,
    "word": cmd_word,
    "preview": cmd_preview,
}


def main(argv=None):
    args = parse_args(argv)
    setup_logging(args.verbose, args.quiet)

    try:
        status = COMMANDS[args.command](args)
    except ToolboxError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    sys.exit(status)


if __name__ == "__main__":
    main()
