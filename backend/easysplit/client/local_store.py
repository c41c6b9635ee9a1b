"""
Device-local bookkeeping: the splits this device saved, their open/closed
flags and the remembered user name.

Storage is an injected key-value store so the same registry works against a
JSON file on disk or an in-memory dict in tests. Anything read back is
validated; malformed data is discarded and the key reset.
"""
import json
import logging
import os
import threading
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional

logger = logging.getLogger(__name__)

MY_SPLITS_KEY = "easysplit-my-splits"
SPLIT_STATUSES_KEY = "easysplit-split-statuses"
USER_NAME_KEY = "easysplit-user-name"

STATUS_OPEN = "open"
STATUS_CLOSED = "closed"
VALID_STATUSES = (STATUS_OPEN, STATUS_CLOSED)


class KeyValueStore:
    """String keys to string values."""

    def get(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def set(self, key: str, value: str) -> None:
        raise NotImplementedError

    def remove(self, key: str) -> None:
        raise NotImplementedError


class MemoryStore(KeyValueStore):
    def __init__(self, initial: Dict[str, str] = None):
        self._data = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)


class JsonFileStore(KeyValueStore):
    """All keys in a single JSON object file, rewritten atomically on every change."""

    def __init__(self, path):
        self.path = Path(path)
        self._lock = threading.Lock()

    def _load(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning("Unreadable local store %s, starting empty: %s", self.path, e)
            return {}
        if not isinstance(data, dict):
            logger.warning("Local store %s is not an object, starting empty", self.path)
            return {}
        return {k: v for k, v in data.items() if isinstance(v, str)}

    def _save(self, data: Dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_text(json.dumps(data), encoding="utf-8")
        os.replace(tmp, self.path)

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._load().get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            data = self._load()
            data[key] = value
            self._save(data)

    def remove(self, key: str) -> None:
        with self._lock:
            data = self._load()
            if data.pop(key, None) is not None:
                self._save(data)


class LocalSplitRegistry:
    """Typed accessors over a KeyValueStore."""

    def __init__(self, store: KeyValueStore):
        self.store = store

    def _read_list(self, key: str) -> Optional[list]:
        raw = self.store.get(key)
        if not raw:
            return []
        try:
            parsed = json.loads(raw)
        except ValueError as e:
            logger.error("Failed to parse %s, resetting: %s", key, e)
            self.store.remove(key)
            return None
        if not isinstance(parsed, list):
            logger.warning("Invalid %s data, resetting", key)
            self.store.remove(key)
            return None
        return parsed

    # My splits

    def my_splits(self) -> List[str]:
        """Codes saved from this device, newest first."""
        parsed = self._read_list(MY_SPLITS_KEY)
        if not parsed:
            return []
        codes = [c for c in parsed if isinstance(c, str) and c]
        if len(codes) != len(parsed):
            logger.warning("Filtered %d invalid saved split codes", len(parsed) - len(codes))
            self.store.set(MY_SPLITS_KEY, json.dumps(codes))
        return codes

    def add_split(self, code: str) -> None:
        code = code.upper()
        codes = [c for c in self.my_splits() if c != code]
        codes.insert(0, code)
        self.store.set(MY_SPLITS_KEY, json.dumps(codes))

    def remove_split(self, code: str) -> None:
        """Forget a split locally. It stays reachable through its share link."""
        code = code.upper()
        self.store.set(MY_SPLITS_KEY, json.dumps([c for c in self.my_splits() if c != code]))
        self.remove_status(code)

    # Open/closed flags

    def all_statuses(self) -> List[Dict[str, str]]:
        parsed = self._read_list(SPLIT_STATUSES_KEY)
        if not parsed:
            return []
        validated = [
            item for item in parsed
            if isinstance(item, dict)
            and isinstance(item.get("code"), str)
            and item.get("status") in VALID_STATUSES
            and isinstance(item.get("savedAt"), str)
        ]
        if len(validated) != len(parsed):
            logger.warning("Filtered %d invalid split status entries", len(parsed) - len(validated))
            self.store.set(SPLIT_STATUSES_KEY, json.dumps(validated))
        return validated

    def get_status(self, code: str) -> str:
        code = code.upper()
        for item in self.all_statuses():
            if item["code"] == code:
                return item["status"]
        return STATUS_OPEN

    def set_status(self, code: str, status: str) -> None:
        if status not in VALID_STATUSES:
            raise ValueError(f"Status must be one of {VALID_STATUSES}")
        code = code.upper()
        statuses = [s for s in self.all_statuses() if s["code"] != code]
        statuses.append({"code": code, "status": status, "savedAt": datetime.utcnow().isoformat()})
        self.store.set(SPLIT_STATUSES_KEY, json.dumps(statuses))

    def remove_status(self, code: str) -> None:
        code = code.upper()
        statuses = self.all_statuses()
        remaining = [s for s in statuses if s["code"] != code]
        if len(remaining) != len(statuses):
            self.store.set(SPLIT_STATUSES_KEY, json.dumps(remaining))

    def open_codes(self) -> List[str]:
        return [s["code"] for s in self.all_statuses() if s["status"] == STATUS_OPEN]

    # Remembered name

    def user_name(self) -> Optional[str]:
        name = self.store.get(USER_NAME_KEY)
        return name.strip() if name and name.strip() else None

    def remember_user_name(self, name: str) -> None:
        name = name.strip()
        if name:
            self.store.set(USER_NAME_KEY, name)
        else:
            self.store.remove(USER_NAME_KEY)
