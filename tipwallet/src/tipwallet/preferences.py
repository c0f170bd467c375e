"""
Persistent storage of the wallet's address, key material, encryption flag
and last known balance.
"""

from __future__ import annotations

import asyncio
import json
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

from loguru import logger

DEFAULTS: dict[str, Any] = {
    "address": "",
    "private_key": "",
    "is_encrypted": False,
    "last_balance": 0,
}


class PreferencesStore(ABC):
    """
    Asynchronous key/value store for the wallet fields.

    Implementations provide get() and set() for a single field; the named
    accessors and commit() are built on top of them.
    """

    @abstractmethod
    async def get(self, name: str) -> Any:
        """Return the stored value of a field, or its default"""

    @abstractmethod
    async def set(self, name: str, value: Any) -> None:
        """Store the value of a field"""

    async def commit(self, **fields: Any) -> None:
        """
        Write several fields as one logical commit.

        Fields are written in order. If a write fails, the fields already
        written are restored to their previous values and the original error
        is re-raised, so either every field is updated or none is.
        """
        _check_fields(fields)
        previous = {name: await self.get(name) for name in fields}
        written: list[str] = []
        try:
            for name, value in fields.items():
                await self.set(name, value)
                written.append(name)
        except Exception:
            logger.warning(f"Commit of {list(fields)} failed, restoring {written}")
            for name in reversed(written):
                await self.set(name, previous[name])
            raise

    async def get_address(self) -> str:
        return await self.get("address")

    async def set_address(self, address: str) -> None:
        await self.set("address", address)

    async def get_private_key(self) -> str:
        return await self.get("private_key")

    async def set_private_key(self, private_key: str) -> None:
        await self.set("private_key", private_key)

    async def get_is_encrypted(self) -> bool:
        return bool(await self.get("is_encrypted"))

    async def set_is_encrypted(self, is_encrypted: bool) -> None:
        await self.set("is_encrypted", is_encrypted)

    async def get_last_balance(self) -> int:
        return int(await self.get("last_balance"))

    async def set_last_balance(self, balance: int) -> None:
        await self.set("last_balance", balance)


def _check_fields(fields: dict[str, Any]) -> None:
    unknown = set(fields) - set(DEFAULTS)
    if unknown:
        raise KeyError(f"Unknown preference field(s): {sorted(unknown)}")


class MemoryPreferences(PreferencesStore):
    """In-memory store. Nothing survives the process."""

    def __init__(self, **initial: Any):
        _check_fields(initial)
        self.values: dict[str, Any] = {**DEFAULTS, **initial}

    async def get(self, name: str) -> Any:
        _check_fields({name: None})
        return self.values[name]

    async def set(self, name: str, value: Any) -> None:
        _check_fields({name: value})
        self.values[name] = value


class JsonFilePreferences(PreferencesStore):
    """
    Store backed by a single JSON file.

    Every write replaces the whole file atomically (temp file + rename), so a
    commit of several fields is a single write.
    """

    def __init__(self, path: Path | str):
        self.path = Path(path).expanduser()

    def _load(self) -> dict[str, Any]:
        if not self.path.exists():
            return dict(DEFAULTS)
        with open(self.path, encoding="utf-8") as f:
            data = json.load(f)
        return {**DEFAULTS, **{k: v for k, v in data.items() if k in DEFAULTS}}

    def _write(self, data: dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, prefix=".prefs-", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
            os.chmod(tmp_path, 0o600)  # Key material lives here
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

    def _update(self, fields: dict[str, Any]) -> None:
        data = self._load()
        data.update(fields)
        self._write(data)

    async def get(self, name: str) -> Any:
        _check_fields({name: None})
        data = await asyncio.to_thread(self._load)
        return data[name]

    async def set(self, name: str, value: Any) -> None:
        _check_fields({name: value})
        await asyncio.to_thread(self._update, {name: value})

    async def commit(self, **fields: Any) -> None:
        _check_fields(fields)
        await asyncio.to_thread(self._update, fields)
