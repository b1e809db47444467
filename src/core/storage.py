"""
Durable storage for persisted client state.
Holds a single named JSON blob, the equivalent of one per-browser
local-storage entry.
"""

import json
from pathlib import Path
from typing import Any, Dict, Optional

from loguru import logger

from .config import settings


class StateStorage:
    """Interface for a single named blob."""

    def read(self) -> Optional[Dict[str, Any]]:
        raise NotImplementedError

    def write(self, blob: Dict[str, Any]) -> None:
        raise NotImplementedError


class MemoryStorage(StateStorage):
    """Keeps the blob in memory. Used by tests and the HTTP service."""

    def __init__(self, blob: Optional[Dict[str, Any]] = None):
        self.blob = blob

    def read(self) -> Optional[Dict[str, Any]]:
        return self.blob

    def write(self, blob: Dict[str, Any]) -> None:
        self.blob = json.loads(json.dumps(blob, default=str))


class FileStorage(StateStorage):
    """
    JSON file under the data directory.

    Missing or unreadable files read as None so callers can fall back to
    defaults.
    """

    def __init__(self, path: Optional[Path] = None):
        self.path = Path(path) if path else settings.storage_path

    def read(self) -> Optional[Dict[str, Any]]:
        if not self.path.exists():
            logger.debug(f"No stored state at {self.path}")
            return None
        try:
            blob = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning(f"Ignoring unreadable state file {self.path}: {e}")
            return None
        if not isinstance(blob, dict):
            logger.warning(f"Ignoring malformed state file {self.path}")
            return None
        return blob

    def write(self, blob: Dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp_path.write_text(json.dumps(blob, default=str, indent=2), encoding="utf-8")
        tmp_path.replace(self.path)
        logger.debug(f"Saved state to {self.path}")
