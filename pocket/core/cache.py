from __future__ import annotations

import re
import threading
from collections import OrderedDict
from typing import Optional

from .models import ContentType, Intent

_SPACE_RE = re.compile(r"\s+")
_EDGE_PUNCT = ".,!?;:\"'。，！？；： "


def cache_key(command: str, item_type: ContentType | str) -> str:
    """Normalised command plus item type."""
    normalized = _SPACE_RE.sub(" ", (command or "").lower()).strip(_EDGE_PUNCT)
    kind = item_type.value if isinstance(item_type, ContentType) else str(item_type)
    return f"{normalized}_{kind}"


class IntentCache:
    """Bounded LRU of resolved intents, safe for concurrent access."""

    def __init__(self, capacity: int = 100) -> None:
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self.capacity = capacity
        self._entries: "OrderedDict[str, Intent]" = OrderedDict()
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    def get(self, key: str) -> Optional[Intent]:
        with self._lock:
            intent = self._entries.get(key)
            if intent is None:
                self.misses += 1
                return None
            self._entries.move_to_end(key)
            self.hits += 1
            return intent

    def put(self, key: str, intent: Intent) -> None:
        with self._lock:
            if key in self._entries:
                # first resolution wins
                self._entries.move_to_end(key)
                return
            self._entries[key] = intent
            while len(self._entries) > self.capacity:
                self._entries.popitem(last=False)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self.hits = 0
            self.misses = 0

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._entries
