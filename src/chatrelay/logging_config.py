import logging
import sys

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def setup_logging(level: str = "INFO") -> logging.Logger:
    """Send the relay's logs to stdout. Safe to call more than once."""
    log = logging.getLogger("chatrelay")
    log.setLevel(level.upper())

    if not any(getattr(h, "_chatrelay", False) for h in log.handlers):
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._chatrelay = True
        log.addHandler(handler)

    return log
