"""Root conftest: test environment and log routing shared by every test package."""

from pathlib import Path

import pytest
import structlog
from dotenv import load_dotenv

from shared.logging import configure_structlog

# zero bot delays and store backoff for every SessionSettings() built in tests
load_dotenv(Path(__file__).resolve().parent.parent / ".env.tests")

# caplog records carry the structlog event dict in record.msg
configure_structlog()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Room context bound by one test must not show up in the next one's logs."""
    structlog.contextvars.clear_contextvars()
    yield
    structlog.contextvars.clear_contextvars()
