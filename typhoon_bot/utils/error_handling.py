"""
Error records for the bot's two duty cycles.

A failed announcement cycle or reply is recorded, logged with the phase it
died in, and the loop carries on from the last committed state.
"""

import asyncio
import time
import traceback
from collections import Counter, deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Deque, Dict, List, Optional

from .logging_config import get_logger


logger = get_logger("errors")


class ErrorSeverity(Enum):
    WARNING = "warning"  # logged, nothing lost
    CYCLE = "cycle"      # this cycle is lost; the next one starts from committed state
    FATAL = "fatal"      # the loop cannot continue


@dataclass
class ComponentError:
    """One failure, tagged with where in the cycle it happened."""
    component: str
    severity: ErrorSeverity
    message: str
    exception: Optional[BaseException] = None
    phase: Optional[str] = None
    context: Dict[str, Any] = field(default_factory=dict)
    timestamp: float = field(default_factory=time.time)

    @property
    def traceback_text(self) -> str:
        if self.exception is None:
            return ""
        return "".join(traceback.format_exception(
            type(self.exception), self.exception, self.exception.__traceback__
        ))

    def describe(self) -> str:
        text = f"{self.component}: {self.message}"
        if self.context:
            text += " (" + ", ".join(f"{k}={v}" for k, v in self.context.items()) + ")"
        if self.exception is not None:
            text += f": {self.exception!r}"
        return text


class ErrorHandler:
    """Keeps the most recent errors and logs each one at its severity."""

    def __init__(self, max_history: int = 100):
        self._history: Deque[ComponentError] = deque(maxlen=max_history)

    def handle_error(self, error: ComponentError) -> bool:
        """
        Record and log `error`.

        Returns:
            True if the owning loop may continue, False if the error is fatal
        """
        self._history.append(error)
        log = logger.bind(phase=error.phase) if error.phase else logger

        if error.severity is ErrorSeverity.WARNING:
            log.warning(error.describe())
            return True
        if error.severity is ErrorSeverity.CYCLE:
            log.error(error.describe())
            if error.exception is not None:
                log.debug(error.traceback_text)
            return True

        log.critical(f"FATAL {error.describe()}", exc_info=error.exception)
        return False

    def get_error_summary(self) -> Dict[str, Any]:
        """Counts by severity and component, plus the latest error."""
        return {
            'total_errors': len(self._history),
            'by_severity': dict(Counter(e.severity.value for e in self._history)),
            'by_component': dict(Counter(e.component for e in self._history)),
            'last_error': self._history[-1].describe() if self._history else None,
            'last_phase': self._history[-1].phase if self._history else None,
        }


async def close_all(*closers: Callable[[], Awaitable[Any]]) -> List[str]:
    """
    Run every closer concurrently; one failing closer never skips the others.

    Returns:
        Names of the closers that raised
    """
    results = await asyncio.gather(*(closer() for closer in closers), return_exceptions=True)
    failed = []
    for closer, result in zip(closers, results):
        if isinstance(result, Exception):
            name = getattr(closer, '__qualname__', repr(closer))
            logger.warning(f"Cleanup of {name} failed: {result}")
            failed.append(name)
    return failed
