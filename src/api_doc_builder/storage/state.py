"""Persisted application state and its key/value persistence."""

import logging

from pydantic import Field, ValidationError

from api_doc_builder.document.base import DocModel, Document, HistoryEntry
from api_doc_builder.storage.keyvalue import JsonFileStore

logger = logging.getLogger(__name__)

STORAGE_KEY = "api-doc-storage"


class PersistedState(DocModel):
    """Everything that survives a restart."""

    document: Document | None = Field(None, alias="documento")
    current_method_id: str | None = Field(None, alias="metodoAtual")
    dark_mode: bool = Field(False, alias="darkMode")
    history: list[HistoryEntry] = Field(default_factory=list, alias="historico")


class StatePersistence:
    """Reads the state record once at startup and rewrites it after every change."""

    def __init__(self, store: JsonFileStore, key: str = STORAGE_KEY):
        self.store = store
        self.key = key

    def load(self) -> PersistedState | None:
        raw = self.store.get(self.key)
        if raw is None:
            return None
        try:
            return PersistedState.model_validate(raw)
        except ValidationError as e:
            logger.warning(f"Ignoring incompatible state under {self.key!r}: {e.error_count()} errors")
            return None

    def save(self, state: PersistedState) -> None:
        try:
            self.store.set(self.key, state.model_dump(mode="json", by_alias=True))
        except OSError as e:
            logger.error(f"Failed to persist state to {self.store.path}: {e}")
