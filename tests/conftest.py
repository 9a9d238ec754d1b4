"""Shared test fixtures."""

from collections.abc import Iterator

import pytest
import structlog

from schedule4d.cli import configure_logging


@pytest.fixture(autouse=True)
def quiet_logging() -> Iterator[None]:
    """Keep log events out of captured command output."""
    configure_logging("WARNING")
    yield
    structlog.reset_defaults()
