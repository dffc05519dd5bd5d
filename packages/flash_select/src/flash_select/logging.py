"""
Logging helpers for select controls.

Several controls usually share one event loop, so records emitted while a
control is working carry its id. Fetch tasks are created inside
``scoped_control_id`` and inherit the id through their context copy.
"""

import logging
import sys
import time
from contextlib import contextmanager
from contextvars import ContextVar
from typing import IO, Generator, Optional, Union

DEFAULT_FORMAT = "%(asctime)s %(levelname)-8s %(control_str)s%(name)s: %(message)s"

# Id of the control whose work runs in the current context.
control_id: ContextVar[Optional[str]] = ContextVar("control_id", default=None)


def _stamp(record: logging.LogRecord) -> None:
    cid = control_id.get()
    record.control_str = f"[{cid}] " if cid else ""


class ControlFilter(logging.Filter):
    """Adds ``control_str`` to every record passing through a handler."""

    def filter(self, record: logging.LogRecord) -> bool:
        _stamp(record)
        return True


class ControlFormatter(logging.Formatter):
    """
    UTC formatter with millisecond ISO timestamps.

    Records that did not pass a ``ControlFilter`` are stamped here, so the
    formatter also works on handlers installed by other code.
    """

    converter = time.gmtime

    def formatTime(self, record, datefmt=None):  # noqa: N802
        ct = self.converter(record.created)
        if datefmt:
            return time.strftime(datefmt, ct)
        return "%s.%03dZ" % (time.strftime("%Y-%m-%d %H:%M:%S", ct), record.msecs)

    def format(self, record: logging.LogRecord) -> str:
        if not hasattr(record, "control_str"):
            _stamp(record)
        return super().format(record)


def setup_logging(
    level: Union[int, str] = logging.INFO,
    stream: Optional[IO[str]] = None,
    capture_roots: bool = False,
    module_name: str = "flash_select",
) -> logging.Logger:
    """
    Send engine logs to ``stream`` (stdout by default).

    Calling it again replaces the handler instead of adding a second one.

    Args:
        level: Logging level name or number. Unknown names fall back to INFO.
        stream: Text stream for the handler.
        capture_roots: Configure the root logger instead of ``module_name``.
        module_name: Namespace configured when capture_roots is False.

    Returns:
        The configured logger.

    >>> setup_logging("debug")
    <Logger flash_select (DEBUG)>
    """
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)

    logger = logging.getLogger() if capture_roots else logging.getLogger(module_name)
    logger.handlers.clear()
    logger.setLevel(level)

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.addFilter(ControlFilter())
    handler.setFormatter(ControlFormatter(DEFAULT_FORMAT))
    logger.addHandler(handler)

    if not capture_roots:
        logger.propagate = False
    return logger


@contextmanager
def scoped_control_id(value: str) -> Generator[None, None, None]:
    """
    Tag records (and tasks created) inside the block with ``value``.

    >>> with scoped_control_id("customer-select"):
    ...     task = asyncio.create_task(fetch())  # logs as [customer-select]
    """
    token = control_id.set(value)
    try:
        yield
    finally:
        control_id.reset(token)
