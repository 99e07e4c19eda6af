"""Document store: the only mutator of the live document.

Owns the active document, the selected-method pointer, the dark-mode
preference and the history ledger. Every state change is announced to
subscribed listeners (persistence hooks in through ``subscribe``).
"""

import logging
from datetime import datetime, timedelta
from typing import Any, Callable

from pydantic import BaseModel

from api_doc_builder.document.base import (
    BlockKind,
    DescriptionBlock,
    Document,
    Example,
    HistoryEntry,
    InputParameter,
    Method,
    OutputParameter,
    Validation,
    utcnow,
)
from api_doc_builder.document.history import DEFAULT_HISTORY_LIMIT, HistoryLedger
from api_doc_builder.document.version import (
    BuildClock,
    IncrementKind,
    default_build_clock,
    increment,
    initial_version,
)
from api_doc_builder.storage.state import PersistedState

logger = logging.getLogger(__name__)

AUTO_BACKUP_DESCRIPTION = "automatic backup before restore"

# Method collections editable item by item, with their item model.
ITEM_COLLECTIONS: dict[str, type[BaseModel]] = {
    "input_parameters": InputParameter,
    "output_parameters": OutputParameter,
    "validations": Validation,
    "description_blocks": DescriptionBlock,
    "examples": Example,
}

# Identity, timestamps and the method list are never taken from update_document.
PROTECTED_DOCUMENT_FIELDS = (
    "id",
    "methods",
    "metodos",
    "created_at",
    "criadoEm",
    "updated_at",
    "atualizadoEm",
)

Listener = Callable[[PersistedState], None]


def _merge(model: BaseModel, changes: dict[str, Any]) -> BaseModel:
    """Shallow-merge ``changes`` into a validated copy of ``model``.

    Keys may be attribute names or serialized aliases; unknown keys are dropped.
    """
    fields = type(model).model_fields
    aliases = {f.alias: name for name, f in fields.items() if f.alias}
    data = dict(model)
    for key, value in changes.items():
        name = key if key in fields else aliases.get(key)
        if name is None:
            logger.debug(f"Ignoring unknown {type(model).__name__} field {key!r}")
            continue
        data[name] = value
    return type(model).model_validate(data)


class DocumentStore:
    """In-memory state container for one active document and its history."""

    def __init__(
        self,
        document: Document | None = None,
        current_method_id: str | None = None,
        dark_mode: bool = False,
        history: HistoryLedger | None = None,
        clock: Callable[[], datetime] | None = None,
        build_clock: BuildClock | None = None,
    ):
        self._clock = clock or utcnow
        self._build_clock = build_clock or default_build_clock
        self._document = document if document is not None else self.new_document()
        self.current_method_id = current_method_id
        self.dark_mode = dark_mode
        self.history = history if history is not None else HistoryLedger(clock=self._clock)
        self._listeners: list[Listener] = []

    @classmethod
    def from_state(
        cls,
        state: PersistedState,
        history_limit: int = DEFAULT_HISTORY_LIMIT,
        clock: Callable[[], datetime] | None = None,
        build_clock: BuildClock | None = None,
    ) -> "DocumentStore":
        """Rebuild a store from a persisted record (``document`` may be null)."""
        store = cls(
            current_method_id=state.current_method_id,
            dark_mode=state.dark_mode,
            history=HistoryLedger(state.history, limit=history_limit, clock=clock),
            clock=clock,
            build_clock=build_clock,
        )
        store._document = state.document
        return store

    @property
    def document(self) -> Document | None:
        return self._document

    def new_document(self) -> Document:
        now = self._clock()
        return Document(version=initial_version(build=self._build_clock()), created_at=now, updated_at=now)

    # -- observers -------------------------------------------------------

    def subscribe(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def state(self) -> PersistedState:
        return PersistedState(
            document=self._document,
            current_method_id=self.current_method_id,
            dark_mode=self.dark_mode,
            history=list(self.history.entries),
        )

    def _changed(self) -> None:
        if not self._listeners:
            return
        state = self.state()
        for listener in self._listeners:
            listener(state)

    def _next_timestamp(self, previous: datetime) -> datetime:
        return max(self._clock(), previous + timedelta(microseconds=1))

    def _touch(self) -> None:
        """Stamp ``updated_at`` and the build counter on the live document."""
        document = self._document
        document.updated_at = self._next_timestamp(document.updated_at)
        document.version = document.version.model_copy(update={"build": self._build_clock()})

    # -- document --------------------------------------------------------

    def set_document(self, document: Document) -> None:
        self._document = document
        logger.info(f"Active document replaced by {document.id}")
        self._changed()

    def update_document(self, **changes: Any) -> None:
        if self._document is None:
            return
        for key in PROTECTED_DOCUMENT_FIELDS:
            if key in changes:
                changes.pop(key)
                logger.warning(f"update_document ignores {key!r}")
        self._document = _merge(self._document, changes)
        self._touch()
        self._changed()

    def reset_document(self) -> Document:
        self._document = self.new_document()
        self.current_method_id = None
        logger.info(f"Started new document {self._document.id}")
        self._changed()
        return self._document

    def toggle_dark_mode(self) -> bool:
        self.dark_mode = not self.dark_mode
        self._changed()
        return self.dark_mode

    # -- methods ---------------------------------------------------------

    def add_method(self, method: Method) -> None:
        if self._document is None:
            return
        self._document.methods.append(method)
        self.current_method_id = method.id
        self._touch()
        self._changed()

    def update_method(self, method_id: str, **changes: Any) -> None:
        """Merge ``changes`` into the matching method. Unknown ids still stamp."""
        document = self._document
        if document is None:
            return
        for index, method in enumerate(document.methods):
            if method.id == method_id:
                document.methods[index] = _merge(method, changes)
                break
        else:
            logger.debug(f"update_method: no method {method_id}")
        self._touch()
        self._changed()

    def delete_method(self, method_id: str) -> None:
        document = self._document
        if document is None:
            return
        document.methods = [m for m in document.methods if m.id != method_id]
        if self.current_method_id == method_id:
            self.current_method_id = None
        self._touch()
        self._changed()

    def set_current_method(self, method_id: str | None) -> None:
        self.current_method_id = method_id
        self._changed()

    @property
    def current_method(self) -> Method | None:
        if self._document is None or self.current_method_id is None:
            return None
        return self._document.find_method(self.current_method_id)

    # -- method collections ----------------------------------------------

    def _items(self, method_id: str, collection: str) -> list | None:
        if collection not in ITEM_COLLECTIONS:
            raise ValueError(f"Unknown collection {collection!r}, expected one of {sorted(ITEM_COLLECTIONS)}")
        if self._document is None:
            return None
        method = self._document.find_method(method_id)
        if method is None:
            return None
        return list(getattr(method, collection))

    def add_item(self, method_id: str, collection: str, item: BaseModel | dict | None = None) -> BaseModel | None:
        """Append a new item (built from defaults or ``item``) to a method collection."""
        items = self._items(method_id, collection)
        if items is None:
            self.update_method(method_id)
            return None
        model = ITEM_COLLECTIONS[collection]
        new_item = item if isinstance(item, model) else model.model_validate(item or {})
        items.append(new_item)
        self.update_method(method_id, **{collection: items})
        return new_item

    def update_item(self, method_id: str, collection: str, item_id: str, **changes: Any) -> None:
        items = self._items(method_id, collection)
        if items is None:
            self.update_method(method_id)
            return
        items = [_merge(i, changes) if i.id == item_id else i for i in items]
        self.update_method(method_id, **{collection: items})

    def delete_item(self, method_id: str, collection: str, item_id: str) -> None:
        items = self._items(method_id, collection)
        if items is None:
            self.update_method(method_id)
            return
        self.update_method(method_id, **{collection: [i for i in items if i.id != item_id]})

    def move_item(self, method_id: str, collection: str, from_index: int, to_index: int) -> None:
        """Reorder one item within a collection; out-of-range indexes change nothing."""
        items = self._items(method_id, collection)
        if items is None or not (0 <= from_index < len(items) and 0 <= to_index < len(items)):
            self.update_method(method_id)
            return
        items.insert(to_index, items.pop(from_index))
        self.update_method(method_id, **{collection: items})

    def set_description_text(self, method_id: str, text: str) -> None:
        """Replace the description blocks with one mapping block per paragraph."""
        blocks = [DescriptionBlock(kind=BlockKind.MAPPING, content=part) for part in text.split("\n\n")] if text else []
        self.update_method(method_id, description_blocks=blocks)

    # -- versions --------------------------------------------------------

    def save_version(self, description: str, kind: IncrementKind, author: str | None = None) -> HistoryEntry | None:
        """Checkpoint the current document, then advance its version by ``kind``."""
        document = self._document
        if document is None:
            return None
        new_version = increment(document.version, kind, build=self._build_clock())
        entry = self.history.record(document, description, author=author)
        document.version = new_version
        document.updated_at = self._next_timestamp(document.updated_at)
        logger.info(f"Saved checkpoint {entry.id} ({kind}) for document {document.id}")
        self._changed()
        return entry

    def restore_version(self, entry_id: str) -> Document | None:
        """Replace the live document with a checkpoint, backing up the current one first."""
        entry = self.history.find(entry_id)
        if entry is None:
            logger.warning(f"No checkpoint {entry_id} to restore")
            return None

        current = self._document
        restored = entry.document.model_copy(deep=True)
        if current is not None:
            self.history.record(current, AUTO_BACKUP_DESCRIPTION)
            restored.id = current.id
            restored.updated_at = self._next_timestamp(max(current.updated_at, restored.created_at))
        else:
            restored.updated_at = self._next_timestamp(restored.created_at)

        self._document = restored
        self.current_method_id = None
        logger.info(f"Restored checkpoint {entry.id} into document {restored.id}")
        self._changed()
        return restored

    def clear_history(self) -> None:
        self.history.clear()
        self._changed()
