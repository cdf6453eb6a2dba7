"""Key-value persistence used for the local error log."""
from __future__ import annotations

import asyncio
import os
import tempfile
from pathlib import Path
from typing import Dict, Optional, Protocol, Union


class KeyValueStore(Protocol):
    """Async string store holding one value per key."""

    async def get_item(self, key: str) -> Optional[str]:
        ...

    async def set_item(self, key: str, value: str) -> None:
        ...


class InMemoryKeyValueStore:
    """Simple in-memory store suitable for tests and local development."""

    def __init__(self) -> None:
        self._items: Dict[str, str] = {}

    async def get_item(self, key: str) -> Optional[str]:
        return self._items.get(key)

    async def set_item(self, key: str, value: str) -> None:
        self._items[key] = value


class FileKeyValueStore:
    """Stores each key as a file under ``directory``.

    Writes go to a temporary file in the same directory and are moved into
    place with :func:`os.replace`, so readers never observe a partial value.
    """

    def __init__(self, directory: Union[Path, str]) -> None:
        self._directory = Path(directory)

    def _path_for(self, key: str) -> Path:
        safe_key = "".join(ch if ch.isalnum() or ch in "-_" else "_" for ch in key)
        return self._directory / f"{safe_key}.json"

    def _read(self, key: str) -> Optional[str]:
        path = self._path_for(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None

    def _write(self, key: str, value: str) -> None:
        self._directory.mkdir(parents=True, exist_ok=True)
        path = self._path_for(key)
        fd, tmp_name = tempfile.mkstemp(dir=self._directory, prefix=f".{path.stem}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(value)
            os.replace(tmp_name, path)
        except Exception:
            try:
                os.unlink(tmp_name)
            except FileNotFoundError:
                pass
            raise

    async def get_item(self, key: str) -> Optional[str]:
        return await asyncio.to_thread(self._read, key)

    async def set_item(self, key: str, value: str) -> None:
        await asyncio.to_thread(self._write, key, value)


__all__ = ["FileKeyValueStore", "InMemoryKeyValueStore", "KeyValueStore"]
