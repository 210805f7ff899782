"""
Key-value string storage, one namespace per client session.

Mirrors the browser's localStorage: values are strings (callers JSON-encode
them), writes are synchronous and the last write wins. When a directory is
configured each namespace is mirrored to ``<dir>/<namespace>.json``.
"""

from typing import Dict, List, Optional
from pathlib import Path
import json
import logging
import re
import threading

logger = logging.getLogger(__name__)


class LocalStorage:
    """
    Key-value store backing favorites, comparison, consent and cached location.
    """

    def __init__(self, namespace: str, directory: Optional[str] = None):
        self.namespace = namespace
        self._items: Dict[str, str] = {}
        self._lock = threading.Lock()
        self._path: Optional[Path] = None

        if directory:
            safe_name = re.sub(r"[^A-Za-z0-9_.-]", "_", namespace)
            self._path = Path(directory) / f"{safe_name}.json"
            self._load()

    def _load(self):
        """Read the mirrored file; unreadable content starts an empty namespace."""
        if not self._path.exists():
            return
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning(f"Discarding unreadable storage file {self._path}: {e}")
            return
        if not isinstance(data, dict):
            logger.warning(f"Discarding storage file {self._path}: not an object")
            return
        self._items = {str(k): v for k, v in data.items() if isinstance(v, str)}

    def _flush(self):
        if self._path is None:
            return
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(json.dumps(self._items), encoding="utf-8")

    def get_item(self, key: str) -> Optional[str]:
        """Return the stored string or None."""
        with self._lock:
            return self._items.get(key)

    def set_item(self, key: str, value: str):
        """Store a string value, replacing any previous one."""
        with self._lock:
            self._items[key] = str(value)
            self._flush()

    def remove_item(self, key: str):
        """Remove a key; missing keys are ignored."""
        with self._lock:
            if self._items.pop(key, None) is not None:
                self._flush()

    def clear(self):
        """Remove every key in this namespace."""
        with self._lock:
            self._items.clear()
            self._flush()

    def keys(self) -> List[str]:
        """List stored keys."""
        with self._lock:
            return list(self._items)

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)
