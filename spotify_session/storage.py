import json
import logging
import os
from dataclasses import dataclass
from typing import Dict, Optional

logger = logging.getLogger(__name__)

DEFAULT_STORAGE_PATH = os.path.join("data", "session.json")

ACCESS_TOKEN_KEY = "spotify_access_token"
REFRESH_TOKEN_KEY = "spotify_refresh_token"
EXPIRE_TIME_KEY = "spotify_token_expire_time"
TIMESTAMP_KEY = "spotify_token_timestamp"

TOKEN_KEYS = (ACCESS_TOKEN_KEY, REFRESH_TOKEN_KEY, EXPIRE_TIME_KEY, TIMESTAMP_KEY)

# Written by front-ends that stringify a missing value.
UNDEFINED = "undefined"


def is_set(value: Optional[str]) -> bool:
    return bool(value) and value != UNDEFINED


class Storage:
    """Minimal string key/value store (the shape of browser localStorage)."""

    def get_item(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def set_item(self, key: str, value) -> None:
        raise NotImplementedError

    def remove_item(self, key: str) -> None:
        raise NotImplementedError


class MemoryStorage(Storage):
    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._items: Dict[str, str] = {k: str(v) for k, v in (initial or {}).items()}

    def get_item(self, key: str) -> Optional[str]:
        return self._items.get(key)

    def set_item(self, key: str, value) -> None:
        self._items[key] = str(value)

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)


class FileStorage(Storage):
    """Key/value entries persisted as one JSON object on disk.

    Every read goes to disk, so another process writing the same file is seen
    on the next access. Writes rewrite the whole file; there is no locking.
    """

    def __init__(self, path: str = DEFAULT_STORAGE_PATH):
        self.path = path

    def _load(self) -> Dict[str, str]:
        if not os.path.exists(self.path):
            return {}

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Ignoring unreadable storage file %s: %s", self.path, e)
            return {}

        if not isinstance(data, dict):
            logger.warning("Ignoring storage file %s: not a JSON object", self.path)
            return {}

        return {str(k): str(v) for k, v in data.items() if v is not None}

    def _dump(self, data: Dict[str, str]) -> None:
        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)

    def get_item(self, key: str) -> Optional[str]:
        return self._load().get(key)

    def set_item(self, key: str, value) -> None:
        data = self._load()
        data[key] = str(value)
        self._dump(data)

    def remove_item(self, key: str) -> None:
        data = self._load()
        if key in data:
            del data[key]
            self._dump(data)


@dataclass(frozen=True)
class TokenRecord:
    """Snapshot of the four stored token entries (any of them may be missing)."""

    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    expire_time_seconds: Optional[float] = None
    issued_at_ms: Optional[float] = None

    @property
    def has_access_token(self) -> bool:
        return is_set(self.access_token)


def _to_float(value: Optional[str]) -> Optional[float]:
    if not is_set(value):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


class TokenStore:
    """Reads and writes the token record as four independent entries."""

    def __init__(self, storage: Storage):
        self.storage = storage

    def read(self) -> TokenRecord:
        return TokenRecord(
            access_token=self.storage.get_item(ACCESS_TOKEN_KEY),
            refresh_token=self.storage.get_item(REFRESH_TOKEN_KEY),
            expire_time_seconds=_to_float(self.storage.get_item(EXPIRE_TIME_KEY)),
            issued_at_ms=_to_float(self.storage.get_item(TIMESTAMP_KEY)),
        )

    def write_login(self, *, access_token: str, refresh_token: Optional[str], expires_in: Optional[str], issued_at_ms: int) -> None:
        # Keys are written one by one; a crash in between leaves a partial record.
        self.storage.set_item(ACCESS_TOKEN_KEY, access_token)
        if refresh_token is not None:
            self.storage.set_item(REFRESH_TOKEN_KEY, refresh_token)
        if expires_in is not None:
            self.storage.set_item(EXPIRE_TIME_KEY, expires_in)
        self.storage.set_item(TIMESTAMP_KEY, int(issued_at_ms))

    def write_refreshed(self, access_token: str, issued_at_ms: int) -> None:
        self.storage.set_item(ACCESS_TOKEN_KEY, access_token)
        self.storage.set_item(TIMESTAMP_KEY, int(issued_at_ms))

    def clear(self) -> None:
        for key in TOKEN_KEYS:
            self.storage.remove_item(key)
