"""
word.py - PDF to Word (DOCX) and HTML.

Pages are rendered at 2x as PNG images; no text or layout is extracted.
The DOCX holds, per page, a grey "Page N of M" label and the page picture
fitted to the text area, with a page break between pages. The HTML embeds
the same images as data URIs.
"""

import base64
import html
import io
import logging
from dataclasses import dataclass
from typing import List, Optional

from docx import Document
from docx.image.exceptions import UnrecognizedImageError
from docx.shared import Emu, Pt, RGBColor

from .compression import RenderedPage
from .errors import SerializeError
from .pipeline import CancelToken, ConversionResult, ProgressCallback, run_document
from .presets import WORD_SETTINGS, RasterSettings
from .utils import docx_name, html_name

logger = logging.getLogger(__name__)

EMU_PER_POINT = 12700
LABEL_HEIGHT = Pt(40)

HTML_HEAD = """<!DOCTYPE html>
<html>
<head>
  <meta charset="UTF-8">
  <title>{title}</title>
  <style>
    body {{ font-family: Arial, sans-serif; max-width: 1200px; margin: 0 auto; padding: 20px; background-color: #f5f5f5; }}
    .page {{ margin-bottom: 30px; background: white; padding: 20px; border-radius: 8px; box-shadow: 0 2px 4px rgba(0,0,0,0.1); page-break-after: always; }}
    .page-number {{ color: #666; font-size: 14px; margin-bottom: 15px; font-weight: bold; }}
    .page img {{ max-width: 100%; height: auto; display: block; border: 1px solid #ddd; }}
  </style>
</head>
<body>
"""

HTML_PAGE = """  <div class="page">
    <div class="page-number">Page {num} of {total}</div>
    <img src="data:image/png;base64,{data}" alt="Page {num}" />
  </div>
"""


class WordWriter:
    """
    Page sink collecting page images for DOCX and HTML output.

    serialize() returns the DOCX; render_html() the HTML page.
    """

    def __init__(self, title: str, settings: RasterSettings = WORD_SETTINGS):
        self.title = title
        self.settings = settings
        self.pages: List[RenderedPage] = []
        self.total_pages = 0

    def start(self, page_count: int):
        self.total_pages = page_count
        self.pages = []

    def add_page(self, rendered: RenderedPage):
        self.pages.append(rendered)

    def _label(self, rendered: RenderedPage) -> str:
        return f"Page {rendered.page_num} of {self.total_pages}"

    def render_html(self) -> str:
        parts = [HTML_HEAD.format(title=html.escape(self.title))]
        for rendered in self.pages:
            parts.append(HTML_PAGE.format(
                num=rendered.page_num,
                total=self.total_pages,
                data=base64.b64encode(rendered.image_data).decode("ascii"),
            ))
        parts.append("</body>\n</html>")
        return "".join(parts)

    def serialize(self) -> bytes:
        if not self.pages:
            raise SerializeError("No pages could be rendered")

        document = Document()
        section = document.sections[0]
        text_width = section.page_width - section.left_margin - section.right_margin
        text_height = (
            section.page_height - section.top_margin - section.bottom_margin - LABEL_HEIGHT
        )

        try:
            for index, rendered in enumerate(self.pages):
                label = document.add_paragraph()
                run = label.add_run(self._label(rendered))
                run.font.size = Pt(10)
                run.font.color.rgb = RGBColor(0x66, 0x66, 0x66)
                label.paragraph_format.space_after = Pt(10)

                # Natural size of the page in EMU, shrunk to fit the text area
                width = rendered.width / self.settings.scale * EMU_PER_POINT
                height = rendered.height / self.settings.scale * EMU_PER_POINT
                fit = min(1.0, text_width / width, text_height / height)

                document.add_picture(
                    io.BytesIO(rendered.image_data),
                    width=Emu(int(width * fit)),
                    height=Emu(int(height * fit)),
                )

                if index < len(self.pages) - 1:
                    document.add_page_break()

            buffer = io.BytesIO()
            document.save(buffer)
        except (UnrecognizedImageError, OSError, ValueError) as e:
            raise SerializeError(f"Failed to build DOCX: {e}") from e

        logger.info(f"Built DOCX with {len(self.pages)} pages ({buffer.tell():,} bytes)")
        return buffer.getvalue()


@dataclass
class WordConversion:
    """DOCX result plus the HTML rendition of the same pages."""
    result: ConversionResult
    html: str
    html_name: str


def pdf_to_word(
    data: bytes,
    name: str = "document.pdf",
    progress_callback: Optional[ProgressCallback] = None,
    cancel_token: Optional[CancelToken] = None,
    max_workers: int = 1
) -> WordConversion:
    """
    Convert a PDF into "<name>.docx" and "<name>.html".

    Each page becomes one image; text is not editable.
    """
    writer = WordWriter(title=name)
    result = run_document(
        data,
        WORD_SETTINGS,
        writer,
        name=name,
        output_name=docx_name(name),
        progress_callback=progress_callback,
        cancel_token=cancel_token,
        max_workers=max_workers
    )
    return WordConversion(result=result, html=writer.render_html(), html_name=html_name(name))
