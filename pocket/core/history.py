from __future__ import annotations

from collections import Counter, deque
from typing import Any, Deque, Dict, Iterator, List

from .models import PocketTask, TaskStatus


class TaskHistory:
    """Ring buffer of finished tasks; the oldest entries are evicted first."""

    def __init__(self, limit: int = 200) -> None:
        if limit <= 0:
            raise ValueError("limit must be positive")
        self.limit = limit
        self._tasks: Deque[PocketTask] = deque(maxlen=limit)

    def append(self, task: PocketTask) -> None:
        if task.is_active:
            raise ValueError(f"task {task.id} is still {task.status.value}")
        self._tasks.append(task)

    def recent(self, limit: int = 10) -> List[PocketTask]:
        """Most recent tasks first."""
        return list(reversed(self._tasks))[:limit]

    def failures(self) -> List[PocketTask]:
        return [task for task in self._tasks if task.status is TaskStatus.FAILED]

    def summary(self) -> Dict[str, Any]:
        counts = Counter(task.status.value for task in self._tasks)
        return {
            "total": len(self._tasks),
            "limit": self.limit,
            "by_status": dict(counts),
        }

    def clear(self) -> None:
        self._tasks.clear()

    def __len__(self) -> int:
        return len(self._tasks)

    def __iter__(self) -> Iterator[PocketTask]:
        return iter(list(self._tasks))
