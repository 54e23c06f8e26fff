"""
pdf_writer.py - PDF assembly from rendered pages.

Supports:
- JPEG images (DCTDecode, embedded as-is)
- PNG images (decoded, re-packed with FlateDecode)

Each page is exactly one image, sized to the image's pixel dimensions
and drawn at the origin to fill the page.
"""

import io
import logging
import zlib
from typing import List, Optional

import pikepdf
from pikepdf import Pdf, Stream, Dictionary, Name
from PIL import Image

from .compression import RenderedPage
from .errors import SerializeError

logger = logging.getLogger(__name__)


class PDFWriter:
    """
    Assembles rendered pages into a minimal PDF.

    Pages are appended in call order. Used as the page sink of the
    rasterize pipeline: start(), add_page() per page, then serialize().
    serialize() releases the document; close() does so when a conversion
    stops early.
    """

    def __init__(self):
        self.pdf = Pdf.new()
        self.pages: List[RenderedPage] = []
        self.expected_pages: Optional[int] = None

    def start(self, page_count: int):
        self.expected_pages = page_count

    def close(self):
        """Release the output document. Safe to call more than once."""
        if self.pdf is not None:
            self.pdf.close()
            self.pdf = None

    def _image_stream(self, rendered: RenderedPage) -> Stream:
        colorspace = Name.DeviceRGB if rendered.is_color else Name.DeviceGray

        if rendered.image_format.is_lossy:
            image_dict = Dictionary({
                '/Type': Name.XObject,
                '/Subtype': Name.Image,
                '/Width': rendered.width,
                '/Height': rendered.height,
                '/ColorSpace': colorspace,
                '/BitsPerComponent': 8,
                '/Filter': Name.DCTDecode,
            })
            return Stream(self.pdf, rendered.image_data, image_dict)

        # PDF has no PNG filter: unpack the pixels and deflate them
        with Image.open(io.BytesIO(rendered.image_data)) as img:
            img = img.convert("RGB" if rendered.is_color else "L")
            raw = img.tobytes()

        image_dict = Dictionary({
            '/Type': Name.XObject,
            '/Subtype': Name.Image,
            '/Width': rendered.width,
            '/Height': rendered.height,
            '/ColorSpace': colorspace,
            '/BitsPerComponent': 8,
            '/Filter': Name.FlateDecode,
        })
        return Stream(self.pdf, zlib.compress(raw, level=9), image_dict)

    def add_page(self, rendered: RenderedPage):
        """Append a page holding one image that fills it exactly."""
        try:
            img_stream = self._image_stream(rendered)

            self.pdf.add_blank_page(page_size=(rendered.width, rendered.height))
            page = self.pdf.pages[-1]

            xobjects = Dictionary({})
            xobjects['/Im0'] = self.pdf.make_indirect(img_stream)
            page.Resources = Dictionary({'/XObject': xobjects})

            # Draw the image scaled to the page
            content = f"""
q
{rendered.width} 0 0 {rendered.height} 0 0 cm
/Im0 Do
Q
"""
            page.Contents = self.pdf.make_indirect(
                Stream(self.pdf, content.strip().encode("ascii"))
            )
        except (pikepdf.PdfError, OSError, ValueError) as e:
            raise SerializeError(f"Could not add page {rendered.page_num}: {e}") from e

        self.pages.append(rendered)

        mode = "color" if rendered.is_color else "gray"
        logger.debug(
            f"Added page {rendered.page_num}: "
            f"{rendered.total_size:,} bytes ({rendered.image_format.value}, {mode})"
        )

    def serialize(self) -> bytes:
        """Save the PDF with object streams and return its bytes."""
        if not self.pages:
            self.close()
            raise SerializeError("No pages could be rendered")

        buffer = io.BytesIO()
        try:
            self.pdf.save(
                buffer,
                compress_streams=True,
                object_stream_mode=pikepdf.ObjectStreamMode.generate
            )
        except pikepdf.PdfError as e:
            raise SerializeError(f"Failed to save PDF: {e}") from e
        finally:
            self.close()

        expected = self.expected_pages or len(self.pages)
        logger.info(
            f"Saved {len(self.pages)} of {expected} pages ({buffer.tell():,} bytes)"
        )
        return buffer.getvalue()

