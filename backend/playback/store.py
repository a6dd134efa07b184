"""
Persisted string key-value store.

A small JSON-file store with string keys and string values, shared by
the player core (writer) and any reader that wants the now-playing
record. Writes go to a temporary file and are renamed into place so a
reader never sees a half-written file.
"""

from __future__ import annotations

import json
import os
from pathlib import Path


class KeyValueStore:
    """
    String-to-string store backed by one JSON file.

    Missing or unreadable files read as empty. Single writer; readers
    re-read the file on every get().
    """

    def __init__(self, path: Path) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def get(self, key: str) -> str | None:
        return self._load().get(key)

    def get_many(self, *keys: str) -> dict[str, str | None]:
        data = self._load()
        return {key: data.get(key) for key in keys}

    def set_many(self, items: dict[str, str], *, remove: tuple[str, ...] = ()) -> None:
        """
        Merge `items` into the store and drop `remove` keys in one write.
        """
        data = self._load()
        for key in remove:
            data.pop(key, None)
        data.update(items)
        self._write(data)

    def set(self, key: str, value: str) -> None:
        self.set_many({key: value})

    def remove(self, key: str) -> None:
        data = self._load()
        if data.pop(key, None) is not None:
            self._write(data)

    # ------------------------------------------------------------------
    # File I/O
    # ------------------------------------------------------------------

    def _load(self) -> dict[str, str]:
        try:
            raw = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}

        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            return {}

        if not isinstance(data, dict):
            return {}
        return {str(k): str(v) for k, v in data.items() if v is not None}

    def _write(self, data: dict[str, str]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._path.with_suffix(self._path.suffix + ".tmp")

        try:
            tmp_path.write_text(
                json.dumps(data, ensure_ascii=False, indent=2) + "\n",
                encoding="utf-8",
            )
            os.replace(tmp_path, self._path)
        except OSError:
            tmp_path.unlink(missing_ok=True)
            raise
