import logging
import threading
from collections import deque
from typing import Deque, Dict, List, Optional, Union


class RingBufferHandler(logging.Handler):
    def __init__(self, max_entries: int = 200):
        super().__init__()
        self.max_entries = max_entries
        self._events: Deque[Dict] = deque(maxlen=max_entries)
        self._lock = threading.Lock()

    def emit(self, record: logging.LogRecord) -> None:
        event = {
            "event": record.getMessage(),
            "level": record.levelname,
            "ts": record.created,
            "details": getattr(record, "details", {}),
        }
        with self._lock:
            self._events.append(event)

    def get_events(self) -> List[Dict]:
        with self._lock:
            return list(self._events)

    def clear(self) -> None:
        with self._lock:
            self._events.clear()


class DetailsFormatter(logging.Formatter):
    """Appends the record's ``details`` mapping as ``key=value`` pairs."""

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        details = getattr(record, "details", None)
        if not details:
            return message
        parts = " ".join(f"{key}={value}" for key, value in details.items())
        return f"{message} | {parts}"


def create_logger(name: str, ring_size: int, level: Union[str, int] = logging.INFO, console: bool = True) -> logging.Logger:
    logger = logging.getLogger(name)
    if logger.handlers:
        return logger
    logger.setLevel(level)
    handler = RingBufferHandler(max_entries=ring_size)
    formatter = DetailsFormatter("%(asctime)s %(levelname)s %(message)s")
    handler.setFormatter(formatter)
    logger.addHandler(handler)
    if console:
        stream = logging.StreamHandler()
        stream.setFormatter(formatter)
        logger.addHandler(stream)
    logger.propagate = False
    return logger


def get_ring_buffer(logger: logging.Logger) -> Optional[RingBufferHandler]:
    for handler in logger.handlers:
        if isinstance(handler, RingBufferHandler):
            return handler
    return None


def log_event(
    logger: logging.Logger,
    event: str,
    details: Optional[dict] = None,
    level: int = logging.INFO,
    exc_info: bool = False,
) -> None:
    logger.log(level, event, exc_info=exc_info, extra={"details": details or {}})
