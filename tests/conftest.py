# tests/conftest.py

"""Shared pytest fixtures for all tests."""

from collections.abc import Generator
from pathlib import Path
from unittest.mock import patch

import pytest

from src.config.settings import Settings


@pytest.fixture(autouse=True)
def isolated_db_path(tmp_path: Path) -> Generator[Path, None, None]:
    """Point the default database at a temp file so no test touches data/."""
    db_path = tmp_path / "price_watch.db"
    with patch.object(Settings, "DB_PATH", db_path):
        yield db_path
