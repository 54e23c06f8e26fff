"""
pipeline.py - Page-by-page rasterize pipeline.

Pipeline:
1. Open the document (LoadError aborts this document)
2. For each page, in order: rasterize -> page step (encode by default)
   -> append to the sink -> progress callback.
   RenderError/EncodeError skip the page, the document continues.
3. Serialize the sink (SerializeError aborts this document)

Output pages always keep input order; failed pages are omitted.
"""

import logging
import threading
import time
from collections import deque
from concurrent.futures import ProcessPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Callable, Iterator, List, Optional, Tuple

import numpy as np

from .compression import encode_page
from .errors import ConversionCancelled, PageError
from .pdf_writer import PDFWriter
from .presets import DEFAULT_COMPRESSION_LEVEL, RasterSettings, compression_settings
from .rasterize import SourceDocument, open_document, render_page
from .utils import compressed_name, compression_ratio, format_file_size

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]
PageStep = Callable[[np.ndarray, int, RasterSettings], Any]


class CancelToken:
    """Checked by the pipeline before every page."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self):
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self):
        if self._event.is_set():
            raise ConversionCancelled("Conversion cancelled")


@dataclass
class PageStats:
    """Statistics for a processed page."""
    page_num: int
    success: bool
    error: Optional[str] = None
    process_time: float = 0.0
    output_size: int = 0


@dataclass
class ConversionResult:
    """Result of converting one document."""
    name: str
    output_name: str
    success: bool

    page_count: int = 0
    pages_ok: int = 0
    pages_failed: int = 0

    input_size: int = 0
    output_size: int = 0
    total_time: float = 0.0

    page_stats: List[PageStats] = field(default_factory=list)
    data: Optional[bytes] = None

    @property
    def reduction_pct(self) -> float:
        if self.input_size == 0:
            return 0
        return (1 - self.output_size / self.input_size) * 100

    @property
    def skipped_pages(self) -> List[int]:
        return [s.page_num for s in self.page_stats if not s.success]

    def summary(self) -> str:
        lines = [
            f"{self.name} -> {self.output_name}",
            f"  size:  {format_file_size(self.input_size)} -> "
            f"{format_file_size(self.output_size)} ({compression_ratio(self.input_size, self.output_size)} smaller)",
            f"  pages: {self.pages_ok} of {self.page_count} converted",
        ]
        if self.skipped_pages:
            lines.append(f"  skipped: {', '.join(map(str, self.skipped_pages))}")
        lines.append(f"  time:  {self.total_time:.1f}s")
        return "\n".join(lines)


def process_page(
    document: SourceDocument,
    page_num: int,
    settings: RasterSettings,
    page_step: PageStep = encode_page
) -> Tuple[PageStats, Any]:
    """
    Process a single page: rasterize -> page step.

    Page-level errors are logged and reported in the stats, never raised.
    """
    stats = PageStats(page_num=page_num, success=False)

    try:
        start = time.time()

        image = render_page(document, page_num, settings.scale)
        payload = page_step(image, page_num, settings)
        image = None  # release the raster before the next page

        stats.output_size = getattr(payload, "total_size", 0)
        stats.process_time = time.time() - start
        stats.success = True

        return stats, payload

    except PageError as e:
        logger.error(f"Page {page_num} failed: {e}")
        stats.error = str(e)
        return stats, None


def _iter_sequential(
    document: SourceDocument,
    settings: RasterSettings,
    page_step: PageStep,
    cancel_token: Optional[CancelToken]
) -> Iterator[Tuple[PageStats, Any]]:
    for page_num in range(1, document.page_count + 1):
        if cancel_token is not None:
            cancel_token.raise_if_cancelled()
        yield process_page(document, page_num, settings, page_step)


# Per-process document for the pooled variant
_worker_document: Optional[SourceDocument] = None


def _init_worker(data: bytes):
    global _worker_document
    _worker_document = open_document(data)


def _process_page_in_worker(
    page_num: int,
    settings: RasterSettings,
    page_step: PageStep
) -> Tuple[PageStats, Any]:
    return process_page(_worker_document, page_num, settings, page_step)


def _iter_pooled(
    data: bytes,
    page_count: int,
    settings: RasterSettings,
    page_step: PageStep,
    cancel_token: Optional[CancelToken],
    max_workers: int
) -> Iterator[Tuple[PageStats, Any]]:
    """
    Process pages in a process pool, yielding results in page order.

    At most 2 * max_workers pages are in flight, so finished pages
    waiting behind a slow one stay bounded.
    """
    window = 2 * max_workers
    executor = ProcessPoolExecutor(
        max_workers=max_workers,
        initializer=_init_worker,
        initargs=(data,)
    )
    pending = deque()
    next_page = 1

    try:
        while pending or next_page <= page_count:
            while next_page <= page_count and len(pending) < window:
                pending.append(
                    executor.submit(_process_page_in_worker, next_page, settings, page_step)
                )
                next_page += 1

            if cancel_token is not None:
                cancel_token.raise_if_cancelled()

            yield pending.popleft().result()
    finally:
        executor.shutdown(wait=True, cancel_futures=True)


def _close_sink(sink):
    close = getattr(sink, "close", None)
    if close is not None:
        close()


def run_document(
    data: bytes,
    settings: RasterSettings,
    sink,
    name: str = "document.pdf",
    output_name: Optional[str] = None,
    page_step: PageStep = encode_page,
    progress_callback: Optional[ProgressCallback] = None,
    cancel_token: Optional[CancelToken] = None,
    max_workers: int = 1
) -> ConversionResult:
    """
    Rasterize every page of a document into a sink.

    Args:
        data: Input PDF bytes
        settings: Active raster preset
        sink: Output accumulator with start(page_count), add_page(payload),
            serialize() -> bytes and optionally close(), which is called
            when the conversion stops before or during serialize()
        name: Input file name (for logs and the result)
        output_name: Derived output file name
        page_step: Turns a rasterized page into the sink's payload
        progress_callback: Optional callback(current_page, total_pages),
            called once per page added to the sink, in page order.
            Exceptions raised by the callback are not caught.
        cancel_token: Optional token checked before each page
        max_workers: 1 = sequential, >1 = process pool

    Returns:
        ConversionResult with the serialized output in `data`

    Raises:
        LoadError: input could not be opened
        SerializeError: output could not be assembled (or no page survived)
        ConversionCancelled: cancel_token was set
    """
    start_time = time.time()

    result = ConversionResult(
        name=name,
        output_name=output_name or name,
        success=False,
        input_size=len(data),
    )

    try:
        with open_document(data) as document:
            result.page_count = document.page_count
            workers = max(1, min(max_workers, result.page_count))

            logger.info(
                f"Processing {name}: {result.page_count} pages, "
                f"{result.input_size:,} bytes, scale {settings.scale}, "
                f"{settings.image_format.value}, {workers} workers"
            )

            sink.start(result.page_count)

            if workers == 1:
                pages = _iter_sequential(document, settings, page_step, cancel_token)
            else:
                pages = _iter_pooled(
                    data, result.page_count, settings, page_step, cancel_token, workers
                )

            try:
                for stats, payload in pages:
                    result.page_stats.append(stats)
                    if payload is None:
                        continue
                    sink.add_page(payload)
                    if progress_callback:
                        progress_callback(stats.page_num, result.page_count)
            finally:
                pages.close()  # shuts the pool down if the loop is left early

        result.pages_ok = sum(1 for s in result.page_stats if s.success)
        result.pages_failed = result.page_count - result.pages_ok
        if result.pages_failed:
            logger.warning(f"{name}: skipped {result.pages_failed} of {result.page_count} pages")

        result.data = sink.serialize()
    except BaseException:
        _close_sink(sink)
        raise

    result.output_size = len(result.data)
    result.success = True
    result.total_time = time.time() - start_time

    logger.info(f"\n{result.summary()}")
    return result


def compress_pdf(
    data: bytes,
    level=DEFAULT_COMPRESSION_LEVEL,
    name: str = "document.pdf",
    progress_callback: Optional[ProgressCallback] = None,
    cancel_token: Optional[CancelToken] = None,
    max_workers: int = 1
) -> ConversionResult:
    """
    Compress a PDF by re-rendering every page as one JPEG.

    Args:
        data: Input PDF bytes
        level: Compression level ("extreme", "normal", "less")

    Returns:
        ConversionResult; output name is "compressed-<name>"
    """
    settings = compression_settings(level)
    return run_document(
        data,
        settings,
        PDFWriter(),
        name=name,
        output_name=compressed_name(name),
        progress_callback=progress_callback,
        cancel_token=cancel_token,
        max_workers=max_workers
    )
