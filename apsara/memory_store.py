"""Flat-file memory store.

Memories are kept as a single JSON array. Every mutation rewrites the whole
file; there is no locking, so only one backend process may own the file.
"""

import json
import logging
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

logger = logging.getLogger(__name__)

DEFAULT_CATEGORY = "general"


class MemoryStore:
    """JSON-file backed list of memory entries."""

    def __init__(self, path: Path):
        self.path = Path(path)
        self._entries: Optional[list[dict[str, Any]]] = None
        self._last_id = 0

    def _load(self) -> list[dict[str, Any]]:
        if self._entries is not None:
            return self._entries

        entries: list[dict[str, Any]] = []
        if self.path.exists():
            try:
                data = json.loads(self.path.read_text(encoding="utf-8"))
                if isinstance(data, list):
                    entries = [e for e in data if isinstance(e, dict)]
                else:
                    logger.error("Memory file %s is not a JSON array, ignoring it", self.path)
            except (OSError, json.JSONDecodeError) as e:
                logger.error(f"Failed to read memory file {self.path}: {type(e).__name__}: {e}")
        self._entries = entries
        return entries

    def _commit(self, entries: list[dict[str, Any]]) -> None:
        """Write ``entries`` to disk, then adopt them. A failed write changes nothing."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(entries, indent=2), encoding="utf-8")
        self._entries = entries

    def _next_id(self) -> int:
        # Millisecond timestamp, bumped when two entries land in the same ms
        candidate = int(time.time() * 1000)
        if candidate <= self._last_id:
            candidate = self._last_id + 1
        self._last_id = candidate
        return candidate

    def store(self, content: str, category: Optional[str] = None) -> dict[str, Any]:
        """Append a new memory and persist the file."""
        if not content or not content.strip():
            raise ValueError("Memory content must not be empty")

        entry = {
            "id": self._next_id(),
            "content": content,
            "category": (category or DEFAULT_CATEGORY).strip() or DEFAULT_CATEGORY,
            "createdAt": datetime.now(timezone.utc).isoformat(),
        }
        self._commit([*self._load(), entry])
        logger.info("Memory stored: [%s] %s", entry["category"], content[:50])
        return entry

    def retrieve(self, query: Optional[str] = "") -> list[dict[str, Any]]:
        """Return all memories, or those whose content or category contains ``query``."""
        entries = self._load()
        if not query or not query.strip():
            return list(entries)

        term = query.strip().lower()
        return [
            e
            for e in entries
            if term in str(e.get("content", "")).lower()
            or term in str(e.get("category", "")).lower()
        ]

    def clear(self, category: Optional[str] = None) -> int:
        """Remove memories in ``category`` (case-insensitive), or all. Returns the count removed."""
        entries = self._load()
        if category:
            wanted = category.strip().lower()
            kept = [e for e in entries if str(e.get("category", "")).lower() != wanted]
        else:
            kept = []
        self._commit(kept)
        removed = len(entries) - len(kept)
        logger.info("Cleared %d memories%s", removed, f" in category {category}" if category else "")
        return removed

    def count(self) -> int:
        return len(self._load())
