"""Persisted derived state: one JSON document per engine name."""

import json
import logging
import os
import threading
from pathlib import Path
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)


class StateStore:
    """Whole-document JSON persistence under a single directory.

    Writes go to a temporary file that replaces the document, and each
    document name has its own writer lock, so the last completed save wins.
    """

    def __init__(self, state_dir: Path):
        self.state_dir = Path(state_dir)
        self._locks: Dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def path_for(self, name: str) -> Path:
        return self.state_dir / f"{name}.json"

    def _lock_for(self, name: str) -> threading.Lock:
        with self._locks_guard:
            return self._locks.setdefault(name, threading.Lock())

    def load(self, name: str) -> Optional[Dict[str, Any]]:
        """Return the stored document, or None when it is missing or unreadable."""
        path = self.path_for(name)
        if not path.exists():
            return None
        try:
            with open(path, "r", encoding="utf-8") as f:
                document = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Could not load state '{name}': {e}")
            return None
        if not isinstance(document, dict):
            logger.warning(f"Ignoring state '{name}': expected an object, got {type(document).__name__}")
            return None
        return document

    def save(self, name: str, document: Dict[str, Any]) -> bool:
        path = self.path_for(name)
        tmp_path = path.with_suffix(".json.tmp")
        with self._lock_for(name):
            try:
                self.state_dir.mkdir(parents=True, exist_ok=True)
                with open(tmp_path, "w", encoding="utf-8") as f:
                    json.dump(document, f, indent=2, ensure_ascii=False, default=str)
                os.replace(tmp_path, path)
            except (OSError, TypeError, ValueError) as e:
                logger.error(f"Could not save state '{name}': {e}")
                return False
        logger.debug(f"Saved state '{name}' to {path}")
        return True

    def clear(self, name: str) -> bool:
        """Delete the document; returns False when there was nothing to delete."""
        path = self.path_for(name)
        with self._lock_for(name):
            if not path.exists():
                return False
            path.unlink()
        logger.info(f"🗑️ Cleared state '{name}'")
        return True

    def list_documents(self) -> List[str]:
        if not self.state_dir.exists():
            return []
        return sorted(path.stem for path in self.state_dir.glob("*.json"))
