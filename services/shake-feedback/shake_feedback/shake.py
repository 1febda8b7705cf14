import logging
import threading
from typing import Callable, List

logger = logging.getLogger("shake_source")

ShakeHandler = Callable[[], None]


class ShakeSource:
    """
    Where shake events come from. The host's motion layer calls emit();
    interested parties register a handler.
    """

    def __init__(self):
        self._handlers: List[ShakeHandler] = []
        self._lock = threading.Lock()

    def register(self, handler: ShakeHandler) -> None:
        with self._lock:
            if handler not in self._handlers:
                self._handlers.append(handler)

    def unregister(self, handler: ShakeHandler) -> None:
        with self._lock:
            if handler in self._handlers:
                self._handlers.remove(handler)

    def emit(self) -> None:
        with self._lock:
            handlers = list(self._handlers)
        logger.info("Shake detected (%d handlers)", len(handlers))
        for handler in handlers:
            handler()
