import asyncio
import io
import logging
from typing import Generator

import pytest
from flash_select.config import SelectConfig
from flash_select.logging import (
    ControlFormatter,
    control_id,
    scoped_control_id,
    setup_logging,
)
from flash_select.schemas import Query
from flash_select.session import SessionController


def make_record(message: str = "hello") -> logging.LogRecord:
    return logging.LogRecord(
        name="flash_select.session",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg=message,
        args=(),
        exc_info=None,
    )


@pytest.fixture
def package_logger() -> Generator[logging.Logger, None, None]:
    """Restores the package logger after setup_logging reconfigures it."""
    logger = logging.getLogger("flash_select")
    handlers, level, propagate = list(logger.handlers), logger.level, logger.propagate
    yield logger
    logger.handlers[:] = handlers
    logger.setLevel(level)
    logger.propagate = propagate


class TestControlFormatter:
    def test_prefixes_active_control_id(self):
        formatter = ControlFormatter("%(control_str)s%(message)s")

        with scoped_control_id("customer-select"):
            output = formatter.format(make_record())

        assert output == "[customer-select] hello"

    def test_no_prefix_without_control_id(self):
        formatter = ControlFormatter("%(control_str)s%(message)s")

        assert formatter.format(make_record()) == "hello"

    def test_timestamps_are_utc_iso(self):
        formatter = ControlFormatter("%(asctime)s")
        record = make_record()
        record.created = 0.0
        record.msecs = 42

        assert formatter.format(record) == "1970-01-01 00:00:00.042Z"


def test_scoped_control_id_resets():
    with scoped_control_id("outer"):
        with scoped_control_id("inner"):
            assert control_id.get() == "inner"
        assert control_id.get() == "outer"

    assert control_id.get() is None


@pytest.mark.asyncio
async def test_tasks_inherit_control_id():
    async def read() -> str | None:
        return control_id.get()

    with scoped_control_id("customer-select"):
        task = asyncio.create_task(read())

    assert await task == "customer-select"


def test_setup_logging_configures_package_logger(package_logger: logging.Logger):
    setup_logging("debug")
    configured = setup_logging("debug")

    assert configured is package_logger
    assert package_logger.level == logging.DEBUG
    assert len(package_logger.handlers) == 1
    assert isinstance(package_logger.handlers[0].formatter, ControlFormatter)
    assert package_logger.propagate is False


def test_setup_logging_unknown_level_defaults_to_info(package_logger: logging.Logger):
    setup_logging("chatty")

    assert package_logger.level == logging.INFO


@pytest.mark.asyncio
async def test_fetch_logs_carry_control_id(package_logger: logging.Logger):
    async def failing(query: Query, page_number: int):
        raise ConnectionError("unreachable")

    stream = io.StringIO()
    setup_logging("error", stream=stream)
    controller = SessionController(
        failing, SelectConfig(name="customer-select", debounce_ms=0)
    )

    await controller.start()
    await controller.wait_idle()

    line = stream.getvalue().splitlines()[0]
    assert "ERROR" in line
    assert "[customer-select] flash_select.coordinator: Failed to fetch page 1" in line
