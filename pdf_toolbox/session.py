"""
session.py - Batch conversion state.

A BatchSession owns the per-file status list for one batch. The driver
moves files through pending -> processing -> completed/error and every
transition is published to subscribers as a typed event.
"""

import logging
import uuid
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional, Union

from .errors import ConversionCancelled, ToolboxError, UserInputError

logger = logging.getLogger(__name__)


class FileStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    ERROR = "error"


@dataclass
class FileEntry:
    """One submitted file and its conversion state."""
    name: str
    data: bytes
    status: FileStatus = FileStatus.PENDING
    progress: float = 0.0  # percent
    error: Optional[str] = None
    result: object = None
    id: str = field(default_factory=lambda: uuid.uuid4().hex)

    @property
    def size(self) -> int:
        return len(self.data)


# Events

@dataclass(frozen=True)
class DocumentStarted:
    index: int
    name: str


@dataclass(frozen=True)
class PageProgress:
    index: int
    current_page: int
    total_pages: int

    @property
    def percent(self) -> float:
        return self.current_page / self.total_pages * 100


@dataclass(frozen=True)
class DocumentCompleted:
    index: int
    name: str


@dataclass(frozen=True)
class DocumentFailed:
    index: int
    name: str
    error: str


@dataclass(frozen=True)
class SessionReset:
    pass


SessionEvent = Union[DocumentStarted, PageProgress, DocumentCompleted, DocumentFailed, SessionReset]
Listener = Callable[[SessionEvent], None]


class BatchSession:
    """
    Files of one batch plus their status.

    Listeners are called synchronously; exceptions they raise propagate
    to whoever triggered the transition.
    """

    def __init__(self):
        self.entries: List[FileEntry] = []
        self._listeners: List[Listener] = []

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener; returns a function that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _emit(self, event: SessionEvent):
        for listener in list(self._listeners):
            listener(event)

    def add_file(self, name: str, data: bytes) -> FileEntry:
        entry = FileEntry(name=name, data=data)
        self.entries.append(entry)
        return entry

    def add_path(self, path: Path) -> FileEntry:
        path = Path(path)
        return self.add_file(path.name, path.read_bytes())

    def remove(self, entry_id: str):
        self.entries = [e for e in self.entries if e.id != entry_id]

    def reset(self):
        """Discard all files."""
        self.entries = []
        self._emit(SessionReset())

    # State transitions

    def start_document(self, index: int):
        entry = self.entries[index]
        entry.status = FileStatus.PROCESSING
        entry.progress = 0.0
        entry.error = None
        self._emit(DocumentStarted(index, entry.name))

    def update_progress(self, index: int, current_page: int, total_pages: int):
        event = PageProgress(index, current_page, total_pages)
        self.entries[index].progress = event.percent
        self._emit(event)

    def complete_document(self, index: int, result: object):
        entry = self.entries[index]
        entry.status = FileStatus.COMPLETED
        entry.progress = 100.0
        entry.result = result
        self._emit(DocumentCompleted(index, entry.name))

    def fail_document(self, index: int, error: str):
        entry = self.entries[index]
        entry.status = FileStatus.ERROR
        entry.error = error
        entry.result = None
        self._emit(DocumentFailed(index, entry.name, error))

    @property
    def completed(self) -> List[FileEntry]:
        return [e for e in self.entries if e.status is FileStatus.COMPLETED]

    @property
    def failed(self) -> List[FileEntry]:
        return [e for e in self.entries if e.status is FileStatus.ERROR]


Converter = Callable[[FileEntry, Callable[[int, int], None]], object]


def run_batch(session: BatchSession, convert: Converter) -> List[FileEntry]:
    """
    Convert every file of the session sequentially, in submission order.

    `convert(entry, progress_callback)` returns the file's result.
    Any ToolboxError (unreadable input, a page range the file does not
    have, ...) marks only that file as failed; the batch moves on.
    ConversionCancelled marks the current file and stops the batch.
    """
    if not session.entries:
        raise UserInputError("No files selected")

    for index, entry in enumerate(session.entries):
        session.start_document(index)

        def progress(current: int, total: int, index=index):
            session.update_progress(index, current, total)

        try:
            result = convert(entry, progress)
        except ConversionCancelled as e:
            session.fail_document(index, str(e))
            raise
        except ToolboxError as e:
            logger.error(f"{entry.name} failed: {e}")
            session.fail_document(index, str(e))
            continue

        session.complete_document(index, result)

    logger.info(
        f"Batch complete: {len(session.completed)}/{len(session.entries)} files"
    )
    return session.entries
