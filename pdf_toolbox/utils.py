"""
utils.py - Small helpers shared by the tools and the CLI.
"""

from pathlib import Path
from typing import Iterable, List, Tuple

from .errors import UserInputError

PDF_MAGIC = b"%PDF-"


def format_file_size(num_bytes: int) -> str:
    """Format a byte count as B / KB / MB."""
    if num_bytes < 1024:
        return f"{num_bytes} B"
    if num_bytes < 1024 * 1024:
        return f"{num_bytes / 1024:.2f} KB"
    return f"{num_bytes / (1024 * 1024):.2f} MB"


def compression_ratio(original_size: int, compressed_size: int) -> str:
    """Size reduction as a percentage string, e.g. '63.5%'."""
    if original_size <= 0:
        return "0.0%"
    return f"{(1 - compressed_size / original_size) * 100:.1f}%"


def normalize_rotation(degrees: int) -> int:
    """Reduce a rotation to 0/90/180/270, rejecting non right angles."""
    if degrees % 90 != 0:
        raise UserInputError(f"Rotation must be a multiple of 90 degrees, got {degrees}")
    return degrees % 360


def strip_pdf_suffix(name: str) -> str:
    if name.lower().endswith(".pdf"):
        return name[:-4]
    return name


# Output filenames per tool

def compressed_name(name: str) -> str:
    return f"compressed-{name}"


def rotated_name(name: str) -> str:
    return f"rotated-{name}"


def organized_name(name: str) -> str:
    return f"organized-{name}"


def docx_name(name: str) -> str:
    return f"{strip_pdf_suffix(name)}.docx"


def html_name(name: str) -> str:
    return f"{strip_pdf_suffix(name)}.html"


def ocr_text_name(name: str) -> str:
    return f"{strip_pdf_suffix(name)}_ocr.txt"


def merged_name(timestamp_ms: int) -> str:
    return f"merged-{timestamp_ms}.pdf"


def looks_like_pdf(path: Path) -> bool:
    """Accept files by .pdf extension and %PDF- header."""
    path = Path(path)
    if path.suffix.lower() != ".pdf" or not path.is_file():
        return False
    with path.open("rb") as handle:
        return handle.read(len(PDF_MAGIC)) == PDF_MAGIC


def filter_pdf_inputs(paths: Iterable[Path]) -> Tuple[List[Path], List[Path]]:
    """Split paths into (accepted PDFs, rejected)."""
    accepted, rejected = [], []
    for p in paths:
        (accepted if looks_like_pdf(p) else rejected).append(Path(p))
    return accepted, rejected
