#!/usr/bin/env python3
"""
File: local_store.py
Author: Bastian Cerf
Date: 14/09/2025
Description:
    Device-local key-value persistence for the client state (notification
    log, dismissed shift, active clock snapshot). Values are JSON
    documents saved in a single file. The store is never synchronized
    across devices.

    A file that cannot be parsed is considered empty: a warning is logged
    and the content is overwritten at the next write. Corrupted local
    state must never prevent the application from running.

Company: Mecacerf SA
Website: http://mecacerf.ch
Contact: info@mecacerf.ch
"""

# Standard libraries
import copy
import json
import logging
import os
import threading
from pathlib import Path
from typing import Any, Optional

logger = logging.getLogger(__name__)


class LocalStoreError(Exception):
    """Raised when the store cannot be written."""

    def __init__(self, message: str = "Unable to write the local store."):
        super().__init__(message)


class LocalStore:
    """
    JSON file backed key-value store. When created without a path, the
    store only lives in memory.
    """

    def __init__(self, path: Optional[str | Path] = None):
        """
        Args:
            path (Optional[str | Path]): File used to persist the values.
                `None` for a memory-only store.
        """
        self._path = Path(path) if path else None
        self._lock = threading.Lock()
        self._data: dict[str, Any] = self.__load()

    @property
    def path(self) -> Optional[Path]:
        return self._path

    def __load(self) -> dict[str, Any]:
        """Read the file, falling back to an empty store on any error."""
        if self._path is None or not self._path.exists():
            return {}

        try:
            with open(self._path, encoding="utf-8") as file:
                data = json.load(file)
        except (OSError, ValueError):
            logger.warning(
                f"Local store '{self._path}' is unreadable, starting empty.",
                exc_info=True,
            )
            return {}

        if not isinstance(data, dict):
            logger.warning(
                f"Local store '{self._path}' doesn't hold an object, starting empty."
            )
            return {}
        return data

    def __save(self):
        if self._path is None:
            return

        # Write to a temporary file first so a crash never leaves a
        # truncated store behind
        tmp_path = self._path.with_suffix(self._path.suffix + ".tmp")
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp_path, "w", encoding="utf-8") as file:
                json.dump(self._data, file, indent=2)
            os.replace(tmp_path, self._path)
        except (OSError, TypeError) as e:
            raise LocalStoreError(f"Unable to write '{self._path}'.") from e

    def get(self, key: str, default: Any = None) -> Any:
        """Get a copy of a value, so callers never alter the store content."""
        with self._lock:
            return copy.deepcopy(self._data.get(key, default))

    def set(self, key: str, value: Any):
        """
        Set and persist a value. The value must be JSON serializable.

        Raises:
            LocalStoreError: The store cannot be written.
        """
        with self._lock:
            self._data[key] = copy.deepcopy(value)
            self.__save()

    def remove(self, key: str):
        """Remove a key. Missing keys are ignored."""
        with self._lock:
            if key in self._data:
                del self._data[key]
                self.__save()

    def __contains__(self, key: str) -> bool:
        with self._lock:
            return key in self._data

    def __str__(self) -> str:
        return f"LocalStore[{self._path or 'memory'}]"
