"""Device-local key/value storage for guest carts (browser localStorage analogue)."""
import json
import os
from pathlib import Path
from typing import Dict, Optional

from shoecart.config import CART_LOCAL_STORAGE_PATH
from shoecart.logging import get_logger

logger = get_logger(__name__)


class LocalStorage:
    """
    String values under string keys, kept in one JSON file.

    Values are read and written wholesale; there are no partial updates.
    An unreadable file behaves like an empty store.
    """

    def __init__(self, path: str | os.PathLike | None = None):
        self.path = Path(path or CART_LOCAL_STORAGE_PATH)

    def is_available(self) -> bool:
        """Probe that the storage can actually be written (like a localStorage test key)."""
        probe_key = "__test__"
        try:
            self.set_item(probe_key, probe_key)
            self.remove_item(probe_key)
            return True
        except OSError as e:
            logger.warning(f"Local storage unavailable at {self.path}: {e}")
            return False

    def get_item(self, key: str) -> Optional[str]:
        return self._read().get(key)

    def set_item(self, key: str, value: str) -> None:
        data = self._read()
        data[key] = value
        self._write(data)

    def remove_item(self, key: str) -> None:
        data = self._read()
        if key in data:
            del data[key]
            self._write(data)

    def _read(self) -> Dict[str, str]:
        try:
            with self.path.open("r", encoding="utf-8") as fh:
                data = json.load(fh)
        except FileNotFoundError:
            return {}
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Local storage file {self.path} unreadable, starting empty: {e}")
            return {}
        if not isinstance(data, dict):
            return {}
        return {str(k): v for k, v in data.items() if isinstance(v, str)}

    def _write(self, data: Dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        with tmp_path.open("w", encoding="utf-8") as fh:
            json.dump(data, fh, ensure_ascii=False)
        os.replace(tmp_path, self.path)


class MemoryStorage(LocalStorage):
    """LocalStorage kept in process memory (devices without a writable home directory)."""

    def __init__(self):
        self._data: Dict[str, str] = {}
        self.path = Path(":memory:")

    def _read(self) -> Dict[str, str]:
        return dict(self._data)

    def _write(self, data: Dict[str, str]) -> None:
        self._data = dict(data)
