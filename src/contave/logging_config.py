"""Logging setup for contave.

Modules obtain their logger with :func:`get_logger`. Entry points call
:func:`configure_logging` once; library code never configures handlers.
"""

import logging
from typing import Optional

ROOT_LOGGER_NAME = "contave"

_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s%(context)s"

# Attributes every LogRecord carries; anything else came in through ``extra``.
_RESERVED = set(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {
    "message",
    "asctime",
    "context",
}


class ContextFormatter(logging.Formatter):
    """Formatter that appends ``extra`` fields as ``key=value`` pairs."""

    def format(self, record: logging.LogRecord) -> str:
        fields = {
            key: value
            for key, value in vars(record).items()
            if key not in _RESERVED and not key.startswith("_")
        }
        record.context = (
            " " + " ".join(f"{key}={value}" for key, value in sorted(fields.items()))
            if fields
            else ""
        )
        return super().format(record)


def get_logger(name: str) -> logging.Logger:
    """Return a logger under the ``contave`` namespace."""
    if name == ROOT_LOGGER_NAME or name.startswith(ROOT_LOGGER_NAME + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


def configure_logging(level: str = "WARNING", handler: Optional[logging.Handler] = None) -> None:
    """Attach a single stderr handler to the ``contave`` logger.

    Calling it again replaces the previous handler, so repeated CLI
    invocations in one process (tests) do not duplicate output.
    """
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    for existing in list(logger.handlers):
        logger.removeHandler(existing)

    if handler is None:
        handler = logging.StreamHandler()
    handler.setFormatter(ContextFormatter(_FORMAT))
    logger.addHandler(handler)
    logger.setLevel(level.upper())
