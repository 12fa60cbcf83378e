from __future__ import annotations

from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from modelvault.config import Settings
from modelvault.main import create_app


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path / 'files.sqlite'}",
        FILE_STORAGE_PATH=str(tmp_path / "uploads"),
        SUGGEST_API_URL="",
        SUGGEST_API_KEY="",
        SUGGEST_MODEL="",
        LOG_LEVEL="WARNING",
    )


@pytest.fixture
def client(settings: Settings):
    with TestClient(create_app(settings)) as test_client:
        yield test_client
