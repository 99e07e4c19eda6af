"""JSON file key/value store.

The whole store is a single JSON object on disk. Every write rewrites the
file through a temporary sibling and an atomic rename, so readers never
see a half-written file.
"""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


class JsonFileStore:
    """Durable key/value store backed by one JSON file."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def _read(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Unreadable storage file {self.path}, starting empty: {e}")
            return {}
        if not isinstance(data, dict):
            logger.error(f"Storage file {self.path} does not hold a JSON object, starting empty")
            return {}
        return data

    def _write(self, data: dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, ensure_ascii=False, indent=2)
            os.replace(tmp_name, self.path)
        except OSError:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def get(self, key: str, default: Any = None) -> Any:
        return self._read().get(key, default)

    def set(self, key: str, value: Any) -> None:
        data = self._read()
        data[key] = value
        self._write(data)
        logger.debug(f"Wrote {key!r} to {self.path}")

    def delete(self, key: str) -> bool:
        """Remove ``key``. Returns True if it existed."""
        data = self._read()
        if key not in data:
            return False
        del data[key]
        self._write(data)
        return True

    def keys(self) -> list[str]:
        return list(self._read())
