"""
JSON configuration store with dotted key-path access.

Holds the user-editable print configuration (office executable overrides,
retry settings, browser override). Reads are cached; writes are serialized
and invalidate the cache.

Example document:
    {
      "office": {
        "word": {"win32": "D:/Office/WINWORD.EXE", "default": "/opt/soffice"},
        "excel": "C:/Program Files/Microsoft Office/root/Office16"
      },
      "officePaths": {"win32": "C:/Office16"},
      "print": {"retries": 1, "retryDelayMs": 3000},
      "browser": {"executablePath": "C:/Chrome/chrome.exe"}
    }
"""

import json
import logging
import os
import threading
from pathlib import Path
from typing import Any, Optional

from print_dispatch.errors import ConfigError, InvalidKeyPathError

logger = logging.getLogger(__name__)


class ConfigStore:
    """Read-through cached JSON document keyed by dotted paths."""

    def __init__(self, path: Path):
        self._path = Path(path)
        self._cache: Optional[dict] = None
        self._write_lock = threading.Lock()

    @property
    def path(self) -> Path:
        return self._path

    def exists(self) -> bool:
        return self._path.exists()

    def _read_file(self) -> dict:
        try:
            with open(self._path, encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            return {}
        except (OSError, ValueError) as e:
            logger.warning(f"Failed to read config file at {self._path}: {e}")
            return {}

        if not isinstance(data, dict):
            logger.warning(f"Config file at {self._path} is not a JSON object, ignoring")
            return {}
        return data

    def load(self) -> dict:
        """Return the whole document, reading it at most once per invalidation."""
        if self._cache is None:
            self._cache = self._read_file()
        return self._cache

    def invalidate(self) -> None:
        self._cache = None

    def get(self, key_path: Optional[str] = None, default: Any = None) -> Any:
        """
        Look up a dotted key path.

        An empty key path returns the whole document. Any missing segment, or
        a segment that walks into a non-object, yields `default`.
        """
        config = self.load()
        if not key_path:
            return config

        node: Any = config
        for key in key_path.split("."):
            if isinstance(node, dict) and key in node:
                node = node[key]
            else:
                return default
        return node

    def set(self, key_path: str, value: Any) -> dict:
        """
        Write a value at a dotted key path and return the new document.

        Intermediate objects are created (or replace non-object values) as
        needed. The file is re-read under the write lock so concurrent
        writers in this process never lose each other's keys.
        """
        if not key_path or not isinstance(key_path, str):
            raise InvalidKeyPathError("keyPath must be a non-empty string")

        keys = key_path.split(".")
        if any(not key for key in keys):
            raise InvalidKeyPathError(f"Invalid keyPath: '{key_path}'")

        with self._write_lock:
            config = self._read_file()

            cursor = config
            for key in keys[:-1]:
                if not isinstance(cursor.get(key), dict):
                    cursor[key] = {}
                cursor = cursor[key]
            cursor[keys[-1]] = value

            self._write_file(config)
            self.invalidate()

        logger.info(f"Config updated: {key_path}")
        return config

    def _write_file(self, config: dict) -> None:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = self._path.with_name(self._path.name + ".tmp")
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(config, f, indent=2, ensure_ascii=False)
            os.replace(tmp_path, self._path)
        except OSError as e:
            raise ConfigError(f"Failed to write config file at {self._path}: {e}") from e
