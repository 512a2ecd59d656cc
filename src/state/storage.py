from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Dict, Optional, Protocol


DEFAULT_STORAGE_PATH_ENV = "USE_WALLET_STORAGE_PATH"

logger = logging.getLogger(__name__)


class StorageAdapter(Protocol):
    """
    Key/value persistence for opaque strings.

    Implementations must tolerate a missing backing store: `get_item` returns
    None and `set_item` / `remove_item` do nothing rather than raising.
    """

    def get_item(self, key: str) -> Optional[str]:
        ...

    def set_item(self, key: str, value: str) -> None:
        ...

    def remove_item(self, key: str) -> None:
        ...


class MemoryStorage:
    """Process-local storage, mostly useful for tests and short-lived scripts."""

    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self._data: Dict[str, str] = dict(initial or {})

    def get_item(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove_item(self, key: str) -> None:
        self._data.pop(key, None)


def _default_storage_file() -> Path:
    base = os.environ.get(DEFAULT_STORAGE_PATH_ENV)
    if base:
        return Path(base)
    return Path(".cache") / "use_wallet_storage.json"


class FileStorage:
    """
    JSON-file storage: one object mapping keys to string values.

    - Missing or corrupt files read as empty.
    - Write failures are logged and ignored.
    - Not safe for concurrent writers in separate processes.
    """

    def __init__(self, path: Optional[os.PathLike[str] | str] = None) -> None:
        self._path = Path(path) if path else _default_storage_file()

    @property
    def path(self) -> Path:
        return self._path

    def _read_all(self) -> Dict[str, str]:
        try:
            if not self._path.exists():
                return {}
            with self._path.open("r", encoding="utf-8") as f:
                raw = json.load(f)
        except (OSError, ValueError) as exc:
            logger.warning("Ignoring unreadable storage file %s: %s", self._path, exc)
            return {}
        if not isinstance(raw, dict):
            return {}
        return {str(k): v for k, v in raw.items() if isinstance(v, str)}

    def _write_all(self, data: Dict[str, str]) -> None:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with self._path.open("w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, sort_keys=True)
        except OSError as exc:
            logger.error("Could not write storage file %s: %s", self._path, exc)

    def get_item(self, key: str) -> Optional[str]:
        return self._read_all().get(key)

    def set_item(self, key: str, value: str) -> None:
        data = self._read_all()
        data[key] = value
        self._write_all(data)

    def remove_item(self, key: str) -> None:
        data = self._read_all()
        if key in data:
            del data[key]
            self._write_all(data)
