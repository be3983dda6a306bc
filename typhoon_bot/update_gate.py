"""
Update detection: decides whether a freshly fetched snapshot is worth announcing.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from .models.data_models import AnnouncementState, Decision, DecisionKind, Snapshot
from .utils.logging_config import get_logger


logger = get_logger("gate")


class UpdateGate:
    """
    Single owner of the process-wide `AnnouncementState`.

    `evaluate` commits the new state as soon as it decides to announce, before
    anything is published, so a failed publish is not retried on the next poll
    (at most one announcement per update). Callers that run
    evaluate-compose-sign as one step hold `guard()` for its whole duration.
    """

    def __init__(self, state: Optional[AnnouncementState] = None):
        self.state = state if state is not None else AnnouncementState()
        self._lock = asyncio.Lock()

    @asynccontextmanager
    async def guard(self) -> AsyncIterator['UpdateGate']:
        """Critical section around read-evaluate-commit."""
        async with self._lock:
            yield self

    def evaluate(self, snapshot: Snapshot) -> Decision:
        """
        Decide what (if anything) to announce for `snapshot` and commit it.

        Args:
            snapshot: Aggregate of currently tracked cyclones

        Returns:
            Decision: NO_ACTION, ANNOUNCE_EMPTY or ANNOUNCE_BULLETIN
        """
        previous = self.state.copy()

        if snapshot.is_empty:
            logger.info("No active cyclones")
            if not self.state.has_active_cyclones:
                return Decision(DecisionKind.NO_ACTION, snapshot)
            self.state.has_active_cyclones = False
            return Decision(DecisionKind.ANNOUNCE_EMPTY, snapshot, previous)

        logger.info(
            f"Last announced issue time: {self.state.last_issue_time or '-'}, "
            f"latest issue time in snapshot: {snapshot.max_issue_time}"
        )
        # Issue times share one ISO 8601 format, so string order is chronological
        if snapshot.max_issue_time <= self.state.last_issue_time:
            logger.info("No update")
            return Decision(DecisionKind.NO_ACTION, snapshot)

        self.state.has_active_cyclones = True
        self.state.last_issue_time = snapshot.max_issue_time
        return Decision(DecisionKind.ANNOUNCE_BULLETIN, snapshot, previous)

    def rollback(self, decision: Decision) -> None:
        """
        Restore the state that `decision` replaced.

        Used when composing or signing fails, never after a publish attempt.
        """
        if decision.previous_state is None:
            return
        logger.warning(f"Rolling back {decision.kind.value} decision")
        prev = decision.previous_state
        self.state.has_active_cyclones = prev.has_active_cyclones
        self.state.last_issue_time = prev.last_issue_time

    def record_message_id(self, message_id: str) -> None:
        """Remember the id of the announcement that was just signed."""
        self.state.last_message_id = message_id

    @property
    def last_message_id(self) -> str:
        return self.state.last_message_id
