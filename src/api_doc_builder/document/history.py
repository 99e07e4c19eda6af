"""History ledger: bounded, most-recent-first log of document checkpoints."""

import logging
from typing import Callable, Iterable, Iterator

from api_doc_builder.document.base import Document, HistoryEntry, utcnow

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_LIMIT = 50


class HistoryLedger:
    """Checkpoints newest first; entries beyond ``limit`` are dropped from the tail."""

    def __init__(
        self,
        entries: Iterable[HistoryEntry] | None = None,
        limit: int = DEFAULT_HISTORY_LIMIT,
        clock: Callable | None = None,
    ):
        if limit < 1:
            raise ValueError(f"History limit must be positive, got {limit}")
        self.limit = limit
        self._clock = clock or utcnow
        self._entries: list[HistoryEntry] = list(entries or [])[:limit]

    @property
    def entries(self) -> tuple[HistoryEntry, ...]:
        return tuple(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[HistoryEntry]:
        return iter(self.entries)

    def record(self, document: Document, description: str, author: str | None = None) -> HistoryEntry:
        """Snapshot ``document`` with its current version and prepend it."""
        entry = HistoryEntry(
            version=document.version.model_copy(deep=True),
            document=document.model_copy(deep=True),
            timestamp=self._clock(),
            author=author,
            description=description,
        )
        self._entries.insert(0, entry)
        evicted = self._entries[self.limit:]
        del self._entries[self.limit:]
        for old in evicted:
            logger.debug(f"Evicted checkpoint {old.id} ({old.description!r})")
        return entry

    def find(self, entry_id: str) -> HistoryEntry | None:
        for entry in self._entries:
            if entry.id == entry_id:
                return entry
        return None

    def clear(self) -> None:
        logger.info(f"Clearing {len(self._entries)} checkpoints")
        self._entries.clear()
