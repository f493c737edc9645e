import os
import json
import logging
from pathlib import Path
from typing import Any, Iterable, Optional

from .events import EventHook, emit

logger = logging.getLogger(__name__)

OPENING = "[\n"
CLOSING = "\n]"


def ensure_dir(path: str) -> None:
    Path(path).mkdir(parents=True, exist_ok=True)


class JsonFileAppender:
    """Appends batches of items to a JSON array file at ``<directory>/<file_name>``.

    The array is opened on the first ``flush`` and must be closed with exactly one call to
    ``close`` once every batch is written. Calls to ``flush`` on one instance must not
    overlap, and two appenders must not share a path.
    """

    def __init__(self, directory: str, file_name: str, on_event: Optional[EventHook] = None):
        self.directory = directory
        self.file_name = file_name
        self.path = os.path.join(directory, file_name)
        self._is_first_write = True
        self._on_event = on_event

    def flush(self, items: Iterable[Any]) -> int:
        """Append ``items`` to the array; returns how many were written."""
        ensure_dir(self.directory)
        self._initialize_file()

        written = 0
        try:
            # serialize the whole batch first so a bad item writes nothing
            payloads = [json.dumps(item, ensure_ascii=False) for item in items]
            with open(self.path, "a", encoding="utf-8") as fh:
                for payload in payloads:
                    if not self._is_first_write or written > 0:
                        fh.write(",\n")
                    fh.write(payload)
                    written += 1
        except (OSError, TypeError, ValueError) as e:
            logger.exception("Error while flushing data to %s: %s", self.path, e)
            raise

        if written:
            self._is_first_write = False
        emit(self._on_event, "writer.flushed", path=self.path, items=written)
        return written

    def close(self) -> None:
        """Terminate the JSON array.

        If the file is missing or empty the opening bracket is written first, so the file holds
        an empty array instead of a lone ``]``.
        """
        if not os.path.exists(self.path) or os.path.getsize(self.path) == 0:
            ensure_dir(self.directory)
            self._initialize_file()
        try:
            with open(self.path, "a", encoding="utf-8") as fh:
                fh.write(CLOSING)
        except OSError as e:
            logger.exception("Error while closing JSON array in %s: %s", self.path, e)
            raise
        emit(self._on_event, "writer.closed", path=self.path)

    def _initialize_file(self) -> None:
        if os.path.exists(self.path):
            size = os.path.getsize(self.path)
            if size > 0:
                # a file holding only the opening bracket has no items yet
                self._is_first_write = size <= len(OPENING)
                logger.debug("File %s exists. Size: %d bytes. First write: %s", self.path, size, self._is_first_write)
                return
        logger.info("Creating new file: %s", self.path)
        with open(self.path, "w", encoding="utf-8") as fh:
            fh.write(OPENING)
        self._is_first_write = True
