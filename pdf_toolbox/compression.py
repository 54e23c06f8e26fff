"""
compression.py - Page image encoding.

Supports:
- JPEG (lossy) with quality in [0, 1] mapped onto Pillow's 1-100 scale
- PNG (lossless), quality ignored
"""

import io
import logging
from dataclasses import dataclass

import numpy as np
from PIL import Image

from .errors import EncodeError
from .presets import ImageFormat, RasterSettings

logger = logging.getLogger(__name__)


@dataclass
class RenderedPage:
    """Encoded page image ready for embedding."""
    page_num: int
    image_data: bytes
    width: int
    height: int
    image_format: ImageFormat
    is_color: bool = True

    @property
    def total_size(self) -> int:
        return len(self.image_data)


def jpeg_quality(quality: float) -> int:
    """Map quality in [0, 1] to Pillow's JPEG quality (1-100)."""
    return max(1, min(100, int(round(quality * 100))))


def encode_image(
    image: np.ndarray,
    image_format: ImageFormat,
    quality: float = 1.0,
    page_num: int = 0
) -> bytes:
    """
    Encode an RGB or grayscale array as JPEG or PNG.

    Raises:
        EncodeError: if Pillow cannot serialize the image
    """
    try:
        if image.ndim == 3 and image.shape[2] == 4:
            image = image[:, :, :3]
        # uint8 (h, w) -> "L", (h, w, 3) -> "RGB"
        img = Image.fromarray(np.ascontiguousarray(image, dtype=np.uint8))

        buffer = io.BytesIO()
        if image_format.is_lossy:
            img.save(
                buffer,
                format="JPEG",
                quality=jpeg_quality(quality),
                optimize=True,
                subsampling=2  # 4:2:0 chroma subsampling
            )
        else:
            img.save(buffer, format="PNG")
    except (OSError, ValueError, TypeError) as e:
        raise EncodeError(page_num, f"{image_format.value} encoding failed: {e}") from e

    return buffer.getvalue()


def encode_page(
    image: np.ndarray,
    page_num: int,
    settings: RasterSettings
) -> RenderedPage:
    """
    Encode a rasterized page according to the raster settings.

    Args:
        image: Rasterized page (RGB numpy array)
        page_num: 1-indexed page number
        settings: Active preset

    Returns:
        RenderedPage with image data and pixel dimensions
    """
    height, width = image.shape[:2]
    data = encode_image(image, settings.image_format, settings.quality, page_num)

    if settings.image_format.is_lossy:
        logger.info(
            f"Page {page_num}: {len(data):,} bytes | "
            f"{width}x{height} | q={jpeg_quality(settings.quality)}"
        )
    else:
        logger.info(f"Page {page_num}: {len(data):,} bytes | {width}x{height} | png")

    return RenderedPage(
        page_num=page_num,
        image_data=data,
        width=width,
        height=height,
        image_format=settings.image_format,
        is_color=image.ndim == 3
    )
