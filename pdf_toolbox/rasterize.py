"""
rasterize.py - PDF loading and page rendering using PyMuPDF.

Pages are rendered in memory to RGB numpy arrays at a scale factor
relative to the page size in points. Output dimensions are
round(page_size * scale), swapped for 90/270 degree rotations.
"""

import logging
import math
from typing import Tuple

import cv2
import numpy as np
try:
    import fitz  # pip install pymupdf
except ImportError:
    import pymupdf as fitz  # apt install python3-pymupdf

from .compression import encode_image
from .errors import LoadError, RenderError
from .presets import PREVIEW_SETTINGS, ImageFormat
from .utils import normalize_rotation

logger = logging.getLogger(__name__)


class SourceDocument:
    """
    An opened input PDF.

    Page numbers are 1-based. Close the document (or use it as a context
    manager) once all pages have been processed.
    """

    def __init__(self, doc: "fitz.Document"):
        self._doc = doc

    @property
    def page_count(self) -> int:
        return len(self._doc)

    def get_page(self, page_num: int) -> "fitz.Page":
        if not 1 <= page_num <= self.page_count:
            raise IndexError(f"Page {page_num} out of range 1..{self.page_count}")
        return self._doc[page_num - 1]

    def close(self):
        if self._doc is not None:
            self._doc.close()
            self._doc = None

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()


def open_document(data: bytes) -> SourceDocument:
    """Open PDF bytes. Raises LoadError when the bytes are not a usable PDF."""
    if not data:
        raise LoadError("Empty input")

    try:
        doc = fitz.open(stream=data, filetype="pdf")
    except Exception as e:
        raise LoadError(f"Not a valid PDF: {e}") from e

    if doc.needs_pass:
        doc.close()
        raise LoadError("PDF is password protected")
    if len(doc) == 0:
        doc.close()
        raise LoadError("PDF has no pages")

    logger.debug(f"Opened PDF: {len(doc)} pages, {len(data):,} bytes")
    return SourceDocument(doc)


def get_page_count(data: bytes) -> int:
    """Get total page count."""
    with open_document(data) as document:
        return document.page_count


def scaled_size(width_pts: float, height_pts: float, scale: float) -> Tuple[int, int]:
    """Pixel size of a page at `scale`, rounded half up, at least 1x1."""
    width = max(1, int(math.floor(width_pts * scale + 0.5)))
    height = max(1, int(math.floor(height_pts * scale + 0.5)))
    return width, height


def render_page(
    document: SourceDocument,
    page_num: int,
    scale: float,
    rotation: int = 0
) -> np.ndarray:
    """
    Rasterize a single page to an RGB image.

    Args:
        document: Opened source document
        page_num: 1-indexed page number
        scale: Fraction of the page size in points (1.0 = 72 DPI)
        rotation: Extra clockwise rotation (0, 90, 180, 270)

    Returns:
        RGB numpy array of shape (height, width, 3)
    """
    rotation = normalize_rotation(rotation)

    try:
        page = document.get_page(page_num)

        # page.rect already honours the page's own /Rotate
        rect = page.rect
        width, height = scaled_size(rect.width, rect.height, scale)

        matrix = fitz.Matrix(scale, scale)
        pixmap = page.get_pixmap(matrix=matrix, alpha=False, colorspace=fitz.csRGB)

        image = np.frombuffer(pixmap.samples, dtype=np.uint8).reshape(
            pixmap.height, pixmap.width, pixmap.n
        ).copy()  # Copy to own the memory
        pixmap = None
    except Exception as e:
        raise RenderError(page_num, f"render failed: {e}") from e

    # MuPDF rounds the pixmap bounds outward
    if (image.shape[1], image.shape[0]) != (width, height):
        image = cv2.resize(image, (width, height), interpolation=cv2.INTER_AREA)

    if rotation:
        # np.rot90 turns counter-clockwise for positive k
        image = np.ascontiguousarray(np.rot90(image, k=-(rotation // 90)))

    logger.debug(
        f"Rasterized page {page_num}: {image.shape[1]}x{image.shape[0]} "
        f"@ scale {scale} rot {rotation}"
    )

    return image


def render_preview(data: bytes, page_num: int, rotation: int = 0) -> bytes:
    """Render a PNG thumbnail of one page, as shown when organizing pages."""
    with open_document(data) as document:
        image = render_page(document, page_num, PREVIEW_SETTINGS.scale, rotation)
    return encode_image(image, ImageFormat.PNG, page_num=page_num)
