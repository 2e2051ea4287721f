import logging
import sys

LOG_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARN": logging.WARNING,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
}
_FORMAT = "[cronwell] %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str = "WARNING", stream=None) -> logging.Logger:
    # Diagnostics share stderr with the wrapped command, so stay quiet by
    # default.
    resolved = LOG_LEVELS.get((level or "").upper(), logging.WARNING)

    logger = logging.getLogger("cronwell")
    logger.setLevel(resolved)
    logger.handlers.clear()

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setLevel(resolved)
    handler.setFormatter(logging.Formatter(_FORMAT))
    logger.addHandler(handler)

    logger.propagate = False
    return logger
