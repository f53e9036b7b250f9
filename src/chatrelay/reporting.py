"""Where the relay sends failures it must not propagate.

Persistence errors, per-recipient delivery errors and unexpected read
errors never reach the sender. They are handed to an ``ErrorReporter``
instead, which by default writes them to the log.
"""

import logging
from typing import Protocol

logger = logging.getLogger(__name__)


class ErrorReporter(Protocol):
    def persistence_failed(self, identity: str, text: str, exc: BaseException) -> None: ...

    def delivery_failed(self, sender: str, recipient: str, exc: BaseException) -> None: ...

    def receive_failed(self, identity: str, exc: BaseException) -> None: ...


class LoggingErrorReporter:
    def __init__(self, log: logging.Logger = logger):
        self.log = log

    def persistence_failed(self, identity: str, text: str, exc: BaseException) -> None:
        self.log.warning("Failed to store message from %s: %r", identity, exc, exc_info=exc)

    def delivery_failed(self, sender: str, recipient: str, exc: BaseException) -> None:
        self.log.warning(
            "Failed to write message from %s to connection %s: %r", sender, recipient, exc
        )

    def receive_failed(self, identity: str, exc: BaseException) -> None:
        self.log.warning("Read from %s failed: %r", identity, exc, exc_info=exc)
