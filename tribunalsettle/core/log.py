"""
tribunalsettle/core/log.py

Logging setup for the tribunalsettle namespace.

Library modules only ever call logging.getLogger(__name__). Handlers are
installed here, once, by the CLI or by an embedding application.
"""

import json
import logging
import sys
from typing import Optional

ROOT_LOGGER = "tribunalsettle"


class JsonFormatter(logging.Formatter):
    """One JSON object per line, for log shippers."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "ts":      self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
            "level":   record.levelname,
            "logger":  record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            entry["exc"] = self.formatException(record.exc_info)
        return json.dumps(entry)


def configure_logging(
    level:       str = "WARNING",
    json_output: bool = False,
    stream:      Optional[object] = None,
) -> logging.Logger:
    """Install (or replace) the single handler on the package logger."""
    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(level.upper())

    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    handler = logging.StreamHandler(stream or sys.stderr)
    if json_output:
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(levelname)-7s %(name)s: %(message)s"))
    logger.addHandler(handler)
    logger.propagate = False
    return logger
