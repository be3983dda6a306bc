"""
Logging for the typhoon bot.

Every record carries the component that emitted it. Relay, event and cycle
context travel as `extra` fields and are printed as `key=value` pairs after
the message, so one relay or one event can be grepped out of a busy log.
"""

import logging
import sys
from datetime import datetime
from typing import Any, MutableMapping, Tuple


ROOT_LOGGER = "typhoon_bot"

# extra fields printed after the message, in this order
CONTEXT_FIELDS = ("relay_url", "event_id", "phase")

LEVEL_COLORS = {
    logging.DEBUG: '\033[36m',
    logging.INFO: '\033[32m',
    logging.WARNING: '\033[33m',
    logging.ERROR: '\033[31m',
    logging.CRITICAL: '\033[35m',
}
RESET = '\033[0m'


class BotFormatter(logging.Formatter):
    """`[time] [LEVEL] [component] message  relay_url=... event_id=... phase=...`"""

    def __init__(self, colorize: bool = False):
        super().__init__()
        self.colorize = colorize

    def format(self, record: logging.LogRecord) -> str:
        stamp = datetime.fromtimestamp(record.created).strftime('%Y-%m-%d %H:%M:%S.%f')[:-3]
        level = record.levelname
        if self.colorize:
            level = f"{LEVEL_COLORS.get(record.levelno, '')}{level}{RESET}"
        component = getattr(record, 'component', '-')

        line = f"[{stamp}] [{level}] [{component}] {record.getMessage()}"
        context = [
            f"{key}={getattr(record, key)}"
            for key in CONTEXT_FIELDS
            if getattr(record, key, None)
        ]
        if context:
            line += "  " + " ".join(context)
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


class BotLogger(logging.LoggerAdapter):
    """Adapter that stamps the component name and any bound context on every record."""

    def __init__(self, component: str, **context: Any):
        super().__init__(logging.getLogger(ROOT_LOGGER), {'component': component, **context})

    def bind(self, **context: Any) -> 'BotLogger':
        """Child logger with extra context, e.g. `logger.bind(relay_url=url)`."""
        merged = {**self.extra, **context}
        component = merged.pop('component')
        return BotLogger(component, **merged)

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> Tuple[Any, MutableMapping[str, Any]]:
        kwargs['extra'] = {**self.extra, **kwargs.get('extra', {})}
        return msg, kwargs


def setup_logging(level: str = "INFO") -> logging.Logger:
    """
    Send the bot's logs to stdout.

    Safe to call more than once; the handler is replaced, not duplicated.
    Unknown level names fall back to INFO.
    """
    numeric = logging.getLevelName(level.upper())
    if not isinstance(numeric, int):
        numeric = logging.INFO

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(BotFormatter(colorize=sys.stdout.isatty()))

    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(numeric)
    logger.handlers = [handler]
    return logger


def get_logger(component: str, **context: Any) -> BotLogger:
    return BotLogger(component, **context)
