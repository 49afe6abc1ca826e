from __future__ import annotations

import json
import logging
import os
import threading
from pathlib import Path
from typing import Any, Optional

from .constants import DEFAULT_STORAGE_DIR, GLOBAL_CONFIG_STORAGE_KEY, SERVICE_CONFIG_STORAGE_KEY
from .errors import CacheCorruptionError
from .types import GlobalConfig, ServiceConfigMap, service_config_from_dict, service_config_to_dict

logger = logging.getLogger(__name__)


class JsonFileStore:
    """Key/value store keeping one JSON document per key under a directory."""

    def __init__(self, directory: str | Path = DEFAULT_STORAGE_DIR):
        self.directory = Path(directory)
        self._lock = threading.Lock()

    def _path(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    def get_item(self, key: str) -> Optional[bytes]:
        path = self._path(key)
        if not path.exists():
            return None
        return path.read_bytes()

    def set_item(self, key: str, value: str) -> None:
        path = self._path(key)
        tmp_path = path.with_suffix(".json.tmp")
        with self._lock:
            self.directory.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(value, encoding="utf-8")
            os.replace(tmp_path, path)


class PersistentConfigCache:
    """
    Last-known-good GlobalConfig and derived service config.

    Unreadable entries count as a miss and failed writes are only logged, so
    neither ever interrupts a resolution pass.
    """

    def __init__(self, store: Optional[JsonFileStore] = None):
        self.store = store or JsonFileStore()

    def get(self, key: str) -> Any:
        try:
            raw = self.store.get_item(key)
        except OSError as e:
            logger.warning("cache read %s failed: %s", key, e)
            return None

        if not raw:
            return None

        try:
            return self._decode(key, raw)
        except CacheCorruptionError as e:
            logger.warning("%s", e)
            return None

    def set(self, key: str, value: Any) -> None:
        if not key or not value:
            return
        try:
            self.store.set_item(key, json.dumps(value))
        except (OSError, TypeError, ValueError) as e:
            logger.warning("cache write %s failed: %s", key, e)

    @staticmethod
    def _decode(key: str, raw: bytes | str) -> Any:
        try:
            text = raw.decode("utf-8") if isinstance(raw, bytes) else raw
        except UnicodeDecodeError as e:
            raise CacheCorruptionError(f"cache entry {key} is not valid UTF-8: {e}") from e
        try:
            return json.loads(text)
        except json.JSONDecodeError as e:
            raise CacheCorruptionError(f"cache entry {key} is not valid JSON: {e}") from e

    def load_global_config(self) -> Optional[GlobalConfig]:
        data = self.get(GLOBAL_CONFIG_STORAGE_KEY)
        # documents written before domain probing existed have no "domains"
        if not isinstance(data, dict) or data.get("domains") is None:
            return None
        try:
            return GlobalConfig.from_dict(data)
        except (KeyError, TypeError, AttributeError) as e:
            logger.warning("cached global config unusable: %s", e)
            return None

    def save_global_config(self, config: Optional[GlobalConfig]) -> None:
        if config is not None:
            self.set(GLOBAL_CONFIG_STORAGE_KEY, config.to_dict())

    def load_service_config(self) -> Optional[ServiceConfigMap]:
        data = self.get(SERVICE_CONFIG_STORAGE_KEY)
        if not isinstance(data, dict) or not data:
            return None
        try:
            return service_config_from_dict(data)
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            logger.warning("cached service config unusable: %s", e)
            return None

    def save_service_config(self, config: ServiceConfigMap) -> None:
        self.set(SERVICE_CONFIG_STORAGE_KEY, service_config_to_dict(config))
