"""
Module: connectors.table_source

Sources that supply the raw order table text to the query coordinator.
"""

import asyncio
import logging
from pathlib import Path
from typing import Protocol, runtime_checkable

from models.errors import TableLoadError

logger = logging.getLogger(__name__)


@runtime_checkable
class TableSource(Protocol):
    """Anything that can fetch the order table as text."""

    async def fetch(self) -> str:
        """Return the table text, or raise TableLoadError."""
        ...


class FileTableSource:
    """Reads the order table from a UTF-8 file without blocking the event loop."""

    def __init__(self, path: str | Path, encoding: str = "utf-8-sig"):
        self.path = Path(path)
        self.encoding = encoding

    async def fetch(self) -> str:
        logger.info(f"Reading order table from {self.path}")
        try:
            return await asyncio.to_thread(self.path.read_text, encoding=self.encoding)
        except (OSError, UnicodeDecodeError) as e:
            raise TableLoadError(f"{self.path}: {e}") from e

    def __repr__(self) -> str:
        return f"FileTableSource({str(self.path)!r})"


class StaticTableSource:
    """
    Serves table text held in memory, optionally after a delay.
    Useful for demos and tests that need a load to stay in flight.
    """

    def __init__(self, text: str | None, delay: float = 0.0, error: str | None = None):
        self.text = text
        self.delay = delay
        self.error = error

    async def fetch(self) -> str:
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None or self.text is None:
            raise TableLoadError(self.error or "no table text available")
        return self.text
