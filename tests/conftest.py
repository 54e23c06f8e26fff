"""Shared fixtures for the test suite.

All fixtures produce real PDF bytes built with PyMuPDF so tests exercise
actual rendering and assembly code paths.
"""

import io
from pathlib import Path
from typing import Callable, Sequence

import fitz  # PyMuPDF
import numpy as np
import pytest
from PIL import Image


def _make_pdf(sizes: Sequence[tuple]) -> bytes:
    doc = fitz.open()
    for i, (width, height) in enumerate(sizes):
        page = doc.new_page(width=width, height=height)
        page.insert_text((20, 40), f"Page {i + 1} content")
    data = doc.tobytes()
    doc.close()
    return data


@pytest.fixture
def pdf_factory() -> Callable[..., bytes]:
    """Build a PDF with one text page per (width, height) in points."""
    def _create(*sizes) -> bytes:
        return _make_pdf(sizes or [(595, 842)])
    return _create


@pytest.fixture
def single_page_pdf() -> bytes:
    """A real single-page A4 PDF containing a text line."""
    return _make_pdf([(595, 842)])


@pytest.fixture
def multi_page_pdf() -> bytes:
    """A 3-page PDF whose page widths (200, 300, 400 pt) identify each page."""
    return _make_pdf([(200, 300), (300, 300), (400, 300)])


@pytest.fixture
def noise_png() -> bytes:
    """Incompressible 400x400 RGB noise, standing in for photographic content."""
    rng = np.random.default_rng(42)
    pixels = rng.integers(0, 256, size=(400, 400, 3), dtype=np.uint8)
    buf = io.BytesIO()
    Image.fromarray(pixels).save(buf, format="PNG")
    return buf.getvalue()


@pytest.fixture
def photo_pdf(noise_png: bytes) -> bytes:
    """A single-page PDF filled with a photographic (noise) image."""
    doc = fitz.open()
    page = doc.new_page(width=595, height=842)
    page.insert_image(page.rect, stream=noise_png)
    data = doc.tobytes()
    doc.close()
    return data


@pytest.fixture
def pdf_file(tmp_path: Path, multi_page_pdf: bytes) -> Path:
    """The 3-page PDF written to disk."""
    path = tmp_path / "report.pdf"
    path.write_bytes(multi_page_pdf)
    return path


def page_widths(data: bytes) -> list:
    """Unrotated page widths (points, rounded) of a PDF, in page order."""
    with fitz.open(stream=data, filetype="pdf") as doc:
        return [round(page.mediabox.width) for page in doc]


def page_rotations(data: bytes) -> list:
    with fitz.open(stream=data, filetype="pdf") as doc:
        return [page.rotation for page in doc]
