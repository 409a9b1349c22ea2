"""Root conftest: test environment, structlog routing for caplog, and a scratch SQLite database."""

from pathlib import Path

import pytest
import structlog
from dotenv import load_dotenv

from shared.db import Database
from shared.logging import configure_structlog

load_dotenv(Path(__file__).resolve().parent.parent / ".env.tests")

# no handlers are installed, so records reach caplog through the root logger
configure_structlog(timestamps=False)


@pytest.fixture(autouse=True)
def _isolated_log_context():
    structlog.contextvars.clear_contextvars()
    yield
    structlog.contextvars.clear_contextvars()


@pytest.fixture
def sqlite_db(tmp_path: Path):
    """A connected Database in a per-test directory, closed afterwards."""
    db = Database(tmp_path / "drafts.db")
    db.connect()
    yield db
    db.close()
