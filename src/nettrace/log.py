"""
Structured logging facade over the standard logging module.
"""

import logging
from typing import Any, Optional


class FieldLogger:
    """
    Logger taking a message plus keyword fields.

    Fields are rendered as sorted key=value pairs after the message so the
    output stays greppable with any logging handler configuration.
    """

    def __init__(self, logger: Optional[logging.Logger] = None):
        self._logger = logger or logging.getLogger("nettrace")

    @property
    def name(self) -> str:
        return self._logger.name

    def _log(self, level: int, msg: str, fields: dict) -> None:
        if not self._logger.isEnabledFor(level):
            return
        if fields:
            rendered = " ".join(f"{key}={value}" for key, value in sorted(fields.items()))
            msg = f"{msg} {rendered}"
        self._logger.log(level, msg)

    def debug(self, msg: str, **fields: Any) -> None:
        self._log(logging.DEBUG, msg, fields)

    def info(self, msg: str, **fields: Any) -> None:
        self._log(logging.INFO, msg, fields)

    def warn(self, msg: str, **fields: Any) -> None:
        self._log(logging.WARNING, msg, fields)

    def error(self, msg: str, **fields: Any) -> None:
        self._log(logging.ERROR, msg, fields)

    def fatal(self, msg: str, **fields: Any) -> None:
        """Log at CRITICAL and terminate the process."""
        self._log(logging.CRITICAL, msg, fields)
        raise SystemExit(1)


def get_logger(name: str) -> FieldLogger:
    """Return a FieldLogger bound to the named standard logger."""
    return FieldLogger(logging.getLogger(name))
