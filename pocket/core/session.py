"""Staging shelf for batch operations over several dropped items."""

from __future__ import annotations

import json
import time
from collections import Counter
from typing import Callable, List, Literal, Optional
from uuid import UUID

from .logger import get_logger
from .models import ContentType, PocketItem

SessionState = Literal["empty", "single", "multiple", "full"]

log = get_logger("session")


def describe_items(items: List[PocketItem]) -> str:
    """Numbered listing of items, used as LLM context."""
    lines = [f"Session contains {len(items)} items:"]
    for index, item in enumerate(items, start=1):
        lines.append(f"{index}. {item.name} ({item.type.value})")
    return "\n".join(lines) + "\n"


class PocketSession:
    """Items staged together so one command can apply to all of them."""

    def __init__(
        self,
        max_items: int = 10,
        timeout: float = 300.0,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.max_items = max_items
        self.timeout = timeout
        self._clock = clock
        self._items: List[PocketItem] = []
        self.started_at: Optional[float] = None
        self.last_activity: Optional[float] = None

    @property
    def items(self) -> List[PocketItem]:
        return list(self._items)

    @property
    def is_active(self) -> bool:
        return bool(self._items)

    @property
    def is_batch(self) -> bool:
        return len(self._items) > 1

    @property
    def can_add_more(self) -> bool:
        return len(self._items) < self.max_items

    @property
    def state(self) -> SessionState:
        count = len(self._items)
        if count == 0:
            return "empty"
        if count >= self.max_items:
            return "full"
        if count == 1:
            return "single"
        return "multiple"

    def __len__(self) -> int:
        return len(self._items)

    def start(self, item: PocketItem) -> None:
        now = self._clock()
        self._items = [item]
        self.started_at = now
        self.last_activity = now
        log.info("session started with %s", item.name)

    def add(self, item: PocketItem) -> bool:
        if not self.can_add_more:
            log.info("session full (max %d), rejected %s", self.max_items, item.name)
            return False
        if not self._items:
            self.start(item)
            return True
        self._items.append(item)
        self.last_activity = self._clock()
        log.info("session added %s (total %d)", item.name, len(self._items))
        return True

    def add_many(self, items: List[PocketItem]) -> int:
        added = 0
        for item in items:
            if not self.add(item):
                break
            added += 1
        return added

    def remove(self, item_id: UUID) -> bool:
        before = len(self._items)
        self._items = [item for item in self._items if item.id != item_id]
        removed = len(self._items) != before
        if removed:
            self.last_activity = self._clock()
            if not self._items:
                self.end()
        return removed

    def remove_at(self, index: int) -> Optional[PocketItem]:
        if index < 0 or index >= len(self._items):
            return None
        item = self._items.pop(index)
        self.last_activity = self._clock()
        if not self._items:
            self.end()
        return item

    def end(self) -> None:
        self._items = []
        self.started_at = None
        self.last_activity = None
        log.info("session ended")

    def check_timeout(self) -> bool:
        """End the session when idle for longer than the timeout."""
        if self.last_activity is None:
            return False
        elapsed = self._clock() - self.last_activity
        if elapsed > self.timeout:
            log.info("session timed out after %.0fs", elapsed)
            self.end()
            return True
        return False

    def items_of_type(self, content_type: ContentType) -> List[PocketItem]:
        return [item for item in self._items if item.type == content_type]

    def type_summary(self) -> str:
        counts = Counter(item.type.value for item in self._items)
        return ", ".join(f"{count} {kind}" for kind, count in counts.items())

    def context(self) -> str:
        """Description of the staged items for the LLM prompt."""
        return describe_items(self._items)

    def create_package(self, name: str = "Package") -> Optional[PocketItem]:
        """Merge the staged items into one JSON manifest item."""
        if not self._items:
            return None
        manifest = [
            {
                "id": str(item.id),
                "name": item.name,
                "type": item.type.value,
                "size": len(item.data),
            }
            for item in self._items
        ]
        return PocketItem(
            type=ContentType.DOCUMENT,
            data=json.dumps(manifest).encode("utf-8"),
            name=f"{name}_{len(self._items)}_items.json",
        )
