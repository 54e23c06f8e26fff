"""
ocr.py - Text extraction with Tesseract.

Each page is rendered at 2x and passed to Tesseract with the selected
languages. Otsu binarization is optional: it helps noisy scans but can
erase low-contrast or coloured text. Page texts are joined under
"--- Page N ---" headers.
"""

import logging
from dataclasses import dataclass
from functools import partial
from typing import List, Optional, Sequence

import cv2
import numpy as np
import pytesseract
from PIL import Image

from .errors import RecognitionError, SerializeError
from .pipeline import CancelToken, ConversionResult, ProgressCallback, run_document
from .presets import DEFAULT_OCR_LANGUAGES, OCR_SETTINGS, RasterSettings, tesseract_command, validate_languages
from .utils import ocr_text_name

logger = logging.getLogger(__name__)


@dataclass
class OcrPage:
    page_num: int
    text: str

    @property
    def total_size(self) -> int:
        return len(self.text)


def binarize(image: np.ndarray) -> np.ndarray:
    """Threshold to black/white using Otsu (0=black, 255=white)."""
    if image.ndim == 3:
        gray = cv2.cvtColor(image, cv2.COLOR_RGB2GRAY)
    else:
        gray = image
    _, binary = cv2.threshold(gray, 0, 255, cv2.THRESH_BINARY + cv2.THRESH_OTSU)
    return binary


def recognize_page(
    image: np.ndarray,
    page_num: int,
    settings: RasterSettings,
    languages: Sequence[str] = DEFAULT_OCR_LANGUAGES,
    threshold: bool = False
) -> OcrPage:
    """Run Tesseract on one rasterized page, binarized first if `threshold`."""
    pytesseract.pytesseract.tesseract_cmd = tesseract_command()
    lang = "+".join(languages)

    try:
        pixels = binarize(image) if threshold else image
        text = pytesseract.image_to_string(Image.fromarray(pixels), lang=lang)
    except (pytesseract.TesseractError, pytesseract.TesseractNotFoundError, RuntimeError) as e:
        raise RecognitionError(page_num, f"OCR failed: {e}") from e

    logger.info(f"Page {page_num}: {len(text):,} characters ({lang})")
    return OcrPage(page_num=page_num, text=text)


class TextCollector:
    """Page sink joining OCR text in page order."""

    def __init__(self):
        self.pages: List[OcrPage] = []

    def start(self, page_count: int):
        self.pages = []

    def add_page(self, page: OcrPage):
        self.pages.append(page)

    def text(self) -> str:
        return "".join(
            f"\n\n--- Page {page.page_num} ---\n\n{page.text}" for page in self.pages
        ).strip()

    def serialize(self) -> bytes:
        if not self.pages:
            raise SerializeError("No page could be recognized")
        return self.text().encode("utf-8")


def ocr_pdf(
    data: bytes,
    languages: Sequence[str] = DEFAULT_OCR_LANGUAGES,
    threshold: bool = False,
    name: str = "document.pdf",
    progress_callback: Optional[ProgressCallback] = None,
    cancel_token: Optional[CancelToken] = None,
    max_workers: int = 1
) -> ConversionResult:
    """
    Extract text from every page.

    Args:
        languages: Tesseract language codes from the OCR catalog
        threshold: Binarize pages (grayscale + Otsu) before recognition

    Returns:
        ConversionResult whose data is UTF-8 text, named "<name>_ocr.txt"
    """
    languages = validate_languages(languages)

    return run_document(
        data,
        OCR_SETTINGS,
        TextCollector(),
        name=name,
        output_name=ocr_text_name(name),
        page_step=partial(recognize_page, languages=tuple(languages), threshold=threshold),
        progress_callback=progress_callback,
        cancel_token=cancel_token,
        max_workers=max_workers
    )
