"""
presets.py - Fixed raster settings for every tool.

Presets are immutable. Compression levels trade scale and JPEG quality
together: a stronger level lowers both.
"""

import os
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Sequence

from .errors import UserInputError


class ImageFormat(str, Enum):
    JPEG = "jpeg"  # lossy
    PNG = "png"    # lossless

    @property
    def is_lossy(self) -> bool:
        return self is ImageFormat.JPEG


@dataclass(frozen=True)
class RasterSettings:
    """Scale (fraction of page size), image format and quality in [0, 1]."""
    scale: float
    image_format: ImageFormat
    quality: float = 1.0

    def __post_init__(self):
        if self.scale <= 0:
            raise ValueError(f"scale must be positive, got {self.scale}")
        if not 0.0 <= self.quality <= 1.0:
            raise ValueError(f"quality must be within [0, 1], got {self.quality}")


class CompressionLevel(str, Enum):
    EXTREME = "extreme"
    NORMAL = "normal"
    LESS = "less"


@dataclass(frozen=True)
class CompressionPreset:
    level: CompressionLevel
    settings: RasterSettings
    label: str
    description: str


COMPRESSION_PRESETS: Dict[CompressionLevel, CompressionPreset] = {
    CompressionLevel.EXTREME: CompressionPreset(
        level=CompressionLevel.EXTREME,
        settings=RasterSettings(scale=0.5, image_format=ImageFormat.JPEG, quality=0.3),
        label="Extreme compression",
        description="Smallest file, lower quality",
    ),
    CompressionLevel.NORMAL: CompressionPreset(
        level=CompressionLevel.NORMAL,
        settings=RasterSettings(scale=0.7, image_format=ImageFormat.JPEG, quality=0.6),
        label="Recommended compression",
        description="Good compression, good quality",
    ),
    CompressionLevel.LESS: CompressionPreset(
        level=CompressionLevel.LESS,
        settings=RasterSettings(scale=0.9, image_format=ImageFormat.JPEG, quality=0.85),
        label="Less compression",
        description="Larger file, high quality",
    ),
}

DEFAULT_COMPRESSION_LEVEL = CompressionLevel.NORMAL

# PDF -> Word/HTML pages are rendered at twice the page size
WORD_SETTINGS = RasterSettings(scale=2.0, image_format=ImageFormat.PNG)

# OCR works on raw pixels, the format is never used for encoding
OCR_SETTINGS = RasterSettings(scale=2.0, image_format=ImageFormat.PNG)

PREVIEW_SETTINGS = RasterSettings(scale=0.5, image_format=ImageFormat.PNG)


def compression_settings(level) -> RasterSettings:
    """Look up the raster settings for a compression level name or enum."""
    try:
        level = CompressionLevel(level)
    except ValueError:
        raise UserInputError(
            f"Unknown compression level: {level!r} "
            f"(choose from {', '.join(l.value for l in CompressionLevel)})"
        ) from None
    return COMPRESSION_PRESETS[level].settings


@dataclass(frozen=True)
class OcrLanguage:
    code: str
    label: str


# Tesseract traineddata codes
OCR_LANGUAGES: Dict[str, OcrLanguage] = {
    "eng": OcrLanguage("eng", "English"),
    "chi_sim": OcrLanguage("chi_sim", "Chinese - Simplified"),
    "khm": OcrLanguage("khm", "Central Khmer"),
}

DEFAULT_OCR_LANGUAGES = ("eng",)


def validate_languages(languages: Sequence[str]) -> List[str]:
    """Return the language codes in order without duplicates, or raise."""
    selected: List[str] = []
    for code in languages:
        if code not in OCR_LANGUAGES:
            raise UserInputError(
                f"Unsupported OCR language: {code!r} "
                f"(choose from {', '.join(OCR_LANGUAGES)})"
            )
        if code not in selected:
            selected.append(code)
    if not selected:
        raise UserInputError("Select at least one OCR language")
    return selected


def tesseract_command() -> str:
    """Tesseract binary, overridable with PDF_TOOLBOX_TESSERACT_CMD."""
    return os.environ.get("PDF_TOOLBOX_TESSERACT_CMD", "tesseract")
