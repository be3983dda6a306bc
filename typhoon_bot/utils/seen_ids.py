"""
Set of already-handled event ids for at-most-once processing.
"""

import time
from collections import OrderedDict
from typing import Callable, Optional


class SeenIdSet:
    """
    Remembers which event ids have been handled in this process.

    Without a retention window the set grows for the process lifetime. With
    `retention_seconds`, events created before `now - retention_seconds` are
    reported as already seen, and their ids are dropped from the front of the
    insertion order. An old id that sits behind a fresher one stays until the
    fresher one expires; it is refused either way.
    """

    def __init__(self, retention_seconds: Optional[float] = None,
                 clock: Callable[[], float] = time.time):
        self._seen: "OrderedDict[str, int]" = OrderedDict()
        self._retention = retention_seconds
        self._clock = clock

    def __contains__(self, event_id: str) -> bool:
        return event_id in self._seen

    def __len__(self) -> int:
        return len(self._seen)

    def add_if_new(self, event_id: str, created_at: int = 0) -> bool:
        """
        Record `event_id` unless it was already handled.

        Returns:
            True if the id is new and was recorded, False if it is a duplicate
        """
        if self._retention is not None:
            horizon = self._clock() - self._retention
            self._evict(horizon)
            if created_at < horizon:
                return False

        if event_id in self._seen:
            return False
        self._seen[event_id] = created_at
        return True

    def _evict(self, horizon: float) -> None:
        while self._seen:
            created_at = next(iter(self._seen.values()))
            if created_at >= horizon:
                break
            self._seen.popitem(last=False)
