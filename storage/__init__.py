"""Store backends and the environment-driven factory that picks one."""

from __future__ import annotations

from pathlib import Path
from typing import Tuple

from api.engine.constants import (
    DEFAULT_DATA_DIR_REL,
    DEFAULT_DB_REL_PATH,
    DEFAULT_STORE_BACKEND,
    ENV_DATA_DIR,
    ENV_DB_PATH,
    ENV_STORE_BACKEND,
    REPO_ROOT,
    STORE_BACKEND_JSON,
    STORE_BACKEND_MEMORY,
    STORE_BACKEND_SQLITE,
    STORE_BACKENDS,
)
from api.engine.stores import BaselineStore, IncidentStore, InMemoryBaselineStore, InMemoryIncidentStore
from api.engine.utils import env_str
from storage.db import SqliteBaselineStore, SqliteIncidentStore, SqliteProgressDB
from storage.json_records import JsonBaselineStore, JsonIncidentStore


class UnknownStoreBackendError(RuntimeError):
    code = "STORE_BACKEND_UNKNOWN"

    def __init__(self, backend: str):
        self.backend = str(backend)
        super().__init__(f"{self.code}: {self.backend!r} (expected one of {', '.join(STORE_BACKENDS)})")


def _resolve_repo_path(raw: str) -> Path:
    candidate = Path(raw).expanduser()
    if not candidate.is_absolute():
        candidate = REPO_ROOT / candidate
    return candidate.resolve()


def resolve_store_backend(backend: str | None = None) -> str:
    value = (backend or env_str(ENV_STORE_BACKEND) or DEFAULT_STORE_BACKEND).strip().lower()
    if value not in STORE_BACKENDS:
        raise UnknownStoreBackendError(value)
    return value


def resolve_data_dir(location: str | None = None) -> Path:
    return _resolve_repo_path(location or env_str(ENV_DATA_DIR) or str(DEFAULT_DATA_DIR_REL))


def resolve_db_path(location: str | None = None) -> Path:
    return _resolve_repo_path(location or env_str(ENV_DB_PATH) or str(DEFAULT_DB_REL_PATH))


def resolve_store_config(backend: str | None = None, location: str | None = None) -> Tuple[str, str]:
    """Return ``(backend, location)`` with the location normalized for the chosen backend."""
    resolved_backend = resolve_store_backend(backend)
    if resolved_backend == STORE_BACKEND_JSON:
        return resolved_backend, str(resolve_data_dir(location))
    if resolved_backend == STORE_BACKEND_SQLITE:
        return resolved_backend, str(resolve_db_path(location))
    return resolved_backend, ""


def open_stores(backend: str | None = None, location: str | None = None) -> Tuple[BaselineStore, IncidentStore]:
    resolved_backend, resolved_location = resolve_store_config(backend, location)
    if resolved_backend == STORE_BACKEND_JSON:
        data_dir = Path(resolved_location)
        return JsonBaselineStore(data_dir), JsonIncidentStore(data_dir)
    if resolved_backend == STORE_BACKEND_SQLITE:
        db = SqliteProgressDB(Path(resolved_location))
        return SqliteBaselineStore(db), SqliteIncidentStore(db)
    if resolved_backend == STORE_BACKEND_MEMORY:
        return InMemoryBaselineStore(), InMemoryIncidentStore()
    raise UnknownStoreBackendError(resolved_backend)
