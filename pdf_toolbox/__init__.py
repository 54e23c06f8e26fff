"""
PDF Toolbox - independent PDF utilities built on PyMuPDF and pikepdf.

Merge, split, rotate and organize pages, compress by rasterizing every page
into a single JPEG, extract text with Tesseract OCR, and convert pages into
Word/HTML documents.
"""

__version__ = "1.0.0"
__author__ = "PDF Toolbox"
