from __future__ import annotations

from pathlib import Path

import pytest

from api.engine.constants import ENV_ADMIN_PASSWORD, ENV_DATA_DIR, ENV_DB_PATH, ENV_STORE_BACKEND


@pytest.fixture
def progress_data_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    data_dir = tmp_path / "progress_logs"
    monkeypatch.setenv(ENV_STORE_BACKEND, "json")
    monkeypatch.setenv(ENV_DATA_DIR, str(data_dir))
    monkeypatch.setenv(ENV_DB_PATH, str(tmp_path / "progress.sqlite"))
    monkeypatch.delenv(ENV_ADMIN_PASSWORD, raising=False)
    yield data_dir


@pytest.fixture(autouse=True)
def _use_progress_data_dir(progress_data_dir: Path) -> None:
    # Every test writes under its own temp dir; nothing touches ./logs.
    _ = progress_data_dir
