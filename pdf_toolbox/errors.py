"""
errors.py - Exception hierarchy.

Document-level errors abort one document (the batch continues).
Page-level errors skip one page (the document continues).
"""


class ToolboxError(Exception):
    """Base class for all toolbox errors."""


class UserInputError(ToolboxError):
    """Invalid request: no files, bad page range, bad rotation, etc."""


class ConversionCancelled(ToolboxError):
    """Raised by the pipeline when its cancel token has been set."""


class DocumentError(ToolboxError):
    """Failure that is fatal for one document."""


class LoadError(DocumentError):
    """Input bytes are not a readable PDF."""


class SerializeError(DocumentError):
    """The output document could not be assembled."""


class PageError(ToolboxError):
    """Failure that is fatal for one page only."""

    def __init__(self, page_num: int, message: str):
        self.page_num = page_num
        super().__init__(f"Page {page_num}: {message}")


class RenderError(PageError):
    """Page could not be rasterized."""


class EncodeError(PageError):
    """Rasterized page could not be encoded as an image."""


class RecognitionError(PageError):
    """OCR engine failed on a page."""
