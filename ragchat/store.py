"""Key/value persistence over a session tier and a durable tier.

Values are stored as JSON text, the way browser storage holds strings. Every
public operation absorbs storage faults: reads of absent or malformed values
return ``None`` and failed writes return ``False`` after logging.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Protocol

from .config import StorageConfig
from .fs_utils import atomic_write_text, safe_unlink
from .logging_utils import get_logger

_LOG = get_logger("store")


class StoreFullError(OSError):
    """Raised by a backend when a write would exceed its capacity."""


class KeyValueStore(Protocol):
    name: str

    def get(self, key: str) -> Any | None: ...

    def set(self, key: str, value: Any) -> bool: ...

    def remove(self, key: str) -> None: ...


class _TextStore:
    """Shared fault-absorbing get/set/remove over raw text backends."""

    name = "store"

    def get(self, key: str) -> Any | None:
        try:
            raw = self._read_raw(key)
        except Exception as exc:
            _LOG.warning("Store {} read of {} failed: {}", self.name, key, exc)
            return None
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except ValueError:
            _LOG.warning("Store {} holds malformed value for {}", self.name, key)
            return None

    def set(self, key: str, value: Any) -> bool:
        try:
            raw = json.dumps(value, ensure_ascii=False)
            self._write_raw(key, raw)
        except Exception as exc:
            _LOG.warning("Store {} write of {} failed: {}", self.name, key, exc)
            return False
        return True

    def remove(self, key: str) -> None:
        try:
            self._delete_raw(key)
        except Exception as exc:
            _LOG.warning("Store {} remove of {} failed: {}", self.name, key, exc)

    def _read_raw(self, key: str) -> str | None:
        raise NotImplementedError

    def _write_raw(self, key: str, raw: str) -> None:
        raise NotImplementedError

    def _delete_raw(self, key: str) -> None:
        raise NotImplementedError


class MemoryStore(_TextStore):
    """In-process store; optional ``capacity_bytes`` emulates a storage quota."""

    def __init__(self, name: str = "memory", *, capacity_bytes: int | None = None) -> None:
        self.name = name
        self._capacity_bytes = capacity_bytes
        self._data: dict[str, str] = {}

    def _read_raw(self, key: str) -> str | None:
        return self._data.get(key)

    def _write_raw(self, key: str, raw: str) -> None:
        if self._capacity_bytes is not None:
            used = sum(len(v.encode("utf-8")) for k, v in self._data.items() if k != key)
            if used + len(raw.encode("utf-8")) > self._capacity_bytes:
                raise StoreFullError(f"quota of {self._capacity_bytes} bytes exceeded")
        self._data[key] = raw

    def _delete_raw(self, key: str) -> None:
        self._data.pop(key, None)

    def put_raw(self, key: str, raw: str) -> None:
        """Place raw text under ``key`` without encoding it."""

        self._data[key] = raw

    def clear(self) -> None:
        self._data.clear()


class JsonFileStore(_TextStore):
    """Store backed by one JSON object file, rewritten atomically on change."""

    def __init__(self, path: Path, name: str | None = None) -> None:
        self.path = Path(path)
        self.name = name or self.path.stem

    def _load(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except ValueError:
            _LOG.warning("Store file {} is not valid JSON; treating as empty", self.path)
            return {}
        if not isinstance(raw, dict):
            return {}
        return {str(k): v for k, v in raw.items() if isinstance(v, str)}

    def _save(self, data: dict[str, str]) -> None:
        atomic_write_text(self.path, json.dumps(data, ensure_ascii=False, indent=2))

    def _read_raw(self, key: str) -> str | None:
        return self._load().get(key)

    def _write_raw(self, key: str, raw: str) -> None:
        data = self._load()
        data[key] = raw
        self._save(data)

    def _delete_raw(self, key: str) -> None:
        data = self._load()
        if data.pop(key, None) is not None:
            self._save(data)

    def clear(self) -> None:
        safe_unlink(self.path)


@dataclass(frozen=True)
class StoreTiers:
    session: KeyValueStore
    durable: KeyValueStore

    @classmethod
    def in_memory(cls) -> "StoreTiers":
        return cls(session=MemoryStore("session"), durable=MemoryStore("durable"))

    @classmethod
    def from_config(cls, config: StorageConfig, session_name: str | None = None) -> "StoreTiers":
        """Durable tier on disk; session tier on disk only for a named session."""

        durable = JsonFileStore(config.durable_path, name="durable")
        if session_name:
            session: KeyValueStore = JsonFileStore(
                config.session_path(session_name), name="session"
            )
        else:
            session = MemoryStore("session")
        return cls(session=session, durable=durable)
