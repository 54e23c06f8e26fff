"""
organize.py - Page-level PDF tools using pikepdf.

Merge, split, rotate and reorganize pages without re-rendering them.
Page numbers are 1-based throughout.
"""

import io
import logging
from dataclasses import dataclass
from typing import List, Mapping, Optional, Sequence, Tuple, Union

import pikepdf
from pikepdf import Pdf

from .errors import LoadError, SerializeError, UserInputError
from .utils import normalize_rotation, strip_pdf_suffix

logger = logging.getLogger(__name__)

PageSelection = Union[str, Sequence[int], None]


def parse_page_ranges(value: str, total_pages: int) -> List[Tuple[int, int]]:
    """
    Parse "1,3-5,7" into inclusive (start, end) ranges.

    Raises:
        UserInputError: on malformed parts or pages outside 1..total_pages
    """
    ranges: List[Tuple[int, int]] = []
    for part in str(value).split(","):
        cleaned = part.strip()
        if not cleaned:
            continue
        if "-" in cleaned:
            start, end = cleaned.split("-", 1)
        else:
            start, end = cleaned, cleaned
        try:
            start_i, end_i = int(start), int(end)
        except ValueError:
            raise UserInputError(f"Invalid page range: {cleaned!r}") from None
        if not 1 <= start_i <= end_i <= total_pages:
            raise UserInputError(
                f"Invalid page range {cleaned!r} for a {total_pages}-page document"
            )
        ranges.append((start_i, end_i))
    if not ranges:
        raise UserInputError("No page range given")
    return ranges


def parse_page_list(value: str, total_pages: int) -> List[int]:
    """Expand "1,3-5" into [1, 3, 4, 5], keeping the given order."""
    pages: List[int] = []
    for start, end in parse_page_ranges(value, total_pages):
        pages.extend(range(start, end + 1))
    return pages


def _resolve_pages(pages: PageSelection, total_pages: int) -> Optional[List[int]]:
    if pages is None:
        return None
    if isinstance(pages, str):
        return parse_page_list(pages, total_pages)
    selected = [int(p) for p in pages]
    for p in selected:
        if not 1 <= p <= total_pages:
            raise UserInputError(f"Page {p} out of range 1..{total_pages}")
    return selected


def _open_pdf(data: bytes, name: str = "document.pdf") -> Pdf:
    if not data:
        raise LoadError(f"{name}: empty input")
    try:
        return Pdf.open(io.BytesIO(data))
    except pikepdf.PasswordError as e:
        raise LoadError(f"{name}: PDF is password protected") from e
    except pikepdf.PdfError as e:
        raise LoadError(f"{name}: not a valid PDF: {e}") from e


def _save(pdf: Pdf) -> bytes:
    buffer = io.BytesIO()
    try:
        pdf.save(
            buffer,
            compress_streams=True,
            object_stream_mode=pikepdf.ObjectStreamMode.generate
        )
    except pikepdf.PdfError as e:
        raise SerializeError(f"Failed to save PDF: {e}") from e
    return buffer.getvalue()


def merge_pdfs(documents: Sequence[Tuple[str, bytes]]) -> bytes:
    """
    Concatenate all pages of every document, in the given order.

    Args:
        documents: (name, data) pairs; at least two are required
    """
    if len(documents) < 2:
        raise UserInputError("Select at least 2 PDF files to merge")

    merged = Pdf.new()
    sources: List[Pdf] = []
    try:
        for name, data in documents:
            source = _open_pdf(data, name)
            sources.append(source)
            merged.pages.extend(source.pages)
            logger.debug(f"Merged {len(source.pages)} pages from {name}")

        output = _save(merged)
    finally:
        merged.close()
        for source in sources:
            source.close()

    logger.info(f"Merged {len(documents)} PDFs ({len(output):,} bytes)")
    return output


def split_pdf(
    data: bytes,
    name: str = "document.pdf",
    mode: str = "all",
    pages: PageSelection = None,
    ranges: Union[str, Sequence[Tuple[int, int]], None] = None
) -> List[Tuple[str, bytes]]:
    """
    Split a PDF into several documents.

    Modes:
        all    - one file per page
        pages  - one file per selected page, in ascending order
        ranges - one file per inclusive (start, end) range

    Returns:
        (file name, data) pairs, e.g. "report_page_3.pdf",
        "report_pages_2-5.pdf"
    """
    base_name = strip_pdf_suffix(name)

    with _open_pdf(data, name) as source:
        total_pages = len(source.pages)

        if mode == "all":
            groups = [[i] for i in range(1, total_pages + 1)]
        elif mode == "pages":
            selected = _resolve_pages(pages, total_pages) or []
            groups = [[p] for p in sorted(set(selected))]
        elif mode == "ranges":
            if isinstance(ranges, str) or ranges is None:
                parsed = parse_page_ranges(ranges or "", total_pages)
            else:
                parsed = []
                for start, end in ranges:
                    if not 1 <= start <= end <= total_pages:
                        raise UserInputError(
                            f"Invalid page range {start}-{end} "
                            f"for a {total_pages}-page document"
                        )
                    parsed.append((start, end))
            groups = [list(range(start, end + 1)) for start, end in parsed]
        else:
            raise UserInputError(f"Unknown split mode: {mode!r}")

        if not groups:
            raise UserInputError("Select at least one page or range to split")

        outputs: List[Tuple[str, bytes]] = []
        for group in groups:
            with Pdf.new() as part:
                for page_num in group:
                    part.pages.append(source.pages[page_num - 1])
                part_data = _save(part)

            if mode == "ranges":
                part_name = f"{base_name}_pages_{group[0]}-{group[-1]}.pdf"
            else:
                part_name = f"{base_name}_page_{group[0]}.pdf"
            outputs.append((part_name, part_data))
            logger.debug(f"Split {part_name}: {len(group)} pages, {len(part_data):,} bytes")

    logger.info(f"Split {name} into {len(outputs)} files")
    return outputs


def rotate_pdf(data: bytes, rotation: int, pages: PageSelection = None) -> bytes:
    """
    Rotate pages clockwise, on top of their existing rotation.

    Args:
        rotation: Multiple of 90 degrees, negative for counter-clockwise
        pages: Pages to rotate ("1,3-4" or a list); all pages when None
    """
    rotation = normalize_rotation(rotation)
    if rotation == 0:
        raise UserInputError("Choose a rotation other than 0 degrees")

    with _open_pdf(data) as pdf:
        targets = _resolve_pages(pages, len(pdf.pages))
        targets = set(targets) if targets is not None else None

        for page_num, page in enumerate(pdf.pages, start=1):
            if targets is None or page_num in targets:
                page.rotate(rotation, relative=True)

        output = _save(pdf)

    logger.info(f"Rotated {len(targets) if targets is not None else 'all'} pages by {rotation}")
    return output


@dataclass(frozen=True)
class PageRef:
    """A page of the output: source document (0 = main), page and extra rotation."""
    page: int
    rotation: int = 0
    document: int = 0


def plan_layout(
    page_count: int,
    order: PageSelection = None,
    deleted: PageSelection = None,
    rotations: Optional[Mapping[int, int]] = None,
    extra_page_counts: Sequence[int] = ()
) -> List[PageRef]:
    """
    Build an organize layout from simple edits.

    Main document pages follow `order` (default: original order) minus
    `deleted`; `rotations` maps main page numbers to degrees. Pages of
    each extra document are appended after them.
    """
    rotations = dict(rotations or {})
    main_pages = _resolve_pages(order, page_count) or list(range(1, page_count + 1))
    removed = set(_resolve_pages(deleted, page_count) or [])

    layout = [
        PageRef(page=p, rotation=normalize_rotation(rotations.get(p, 0)))
        for p in main_pages
        if p not in removed
    ]
    for doc_index, count in enumerate(extra_page_counts, start=1):
        layout.extend(PageRef(page=p, document=doc_index) for p in range(1, count + 1))
    return layout


def organize_pdf(
    data: bytes,
    layout: Sequence[PageRef],
    extra_documents: Sequence[bytes] = ()
) -> bytes:
    """
    Build a new PDF from an ordered page layout.

    Pages may come from the main document or from extra documents
    (PageRef.document 1..n). Pages left out of the layout are dropped.
    """
    if not layout:
        raise UserInputError("No pages to save. Keep at least one page.")

    seen = set()
    for ref in layout:
        key = (ref.document, ref.page)
        if key in seen:
            raise UserInputError(f"Page {ref.page} of document {ref.document} is used twice")
        seen.add(key)

    sources: List[Pdf] = []
    output_pdf = Pdf.new()
    try:
        sources.append(_open_pdf(data))
        for index, extra in enumerate(extra_documents, start=1):
            sources.append(_open_pdf(extra, f"document {index}"))

        for ref in layout:
            if not 0 <= ref.document < len(sources):
                raise UserInputError(f"Unknown document {ref.document}")
            source_pages = sources[ref.document].pages
            if not 1 <= ref.page <= len(source_pages):
                raise UserInputError(
                    f"Page {ref.page} out of range 1..{len(source_pages)} "
                    f"in document {ref.document}"
                )

            output_pdf.pages.append(source_pages[ref.page - 1])
            rotation = normalize_rotation(ref.rotation)
            if rotation:
                output_pdf.pages[-1].rotate(rotation, relative=True)

        output = _save(output_pdf)
    finally:
        output_pdf.close()
        for source in sources:
            source.close()

    logger.info(f"Organized {len(layout)} pages ({len(output):,} bytes)")
    return output

