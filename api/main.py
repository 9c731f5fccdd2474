import hmac
import threading
from datetime import datetime, timezone
from functools import lru_cache
from typing import Any, Dict, List, Optional, Tuple

from fastapi import Depends, FastAPI, Header, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from api.engine.constants import ADMIN_PASSWORD_HEADER, ENGINE_VERSION, ENV_ADMIN_PASSWORD, ENV_DEV_CORS
from api.engine.errors import MalformedInputError, StoreUnavailableError
from api.engine.log_config import configure_logging
from api.engine.reconcile_engine_v1 import DeleteOutcome, ReconciliationEngine
from api.engine.snapshot_v1 import (
    SnapshotPayloadV1,
    incident_to_record,
    snapshot_from_payload,
    snapshot_to_record,
)
from api.engine.utils import env_str, env_truthy
from storage import open_stores, resolve_store_config


class LogSubmitResponse(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    status: str
    message: str
    player_name: str = Field(..., alias="playerName")
    reasons: List[str] = Field(default_factory=list)


class LogListingEntry(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    name: str
    time: int = Field(..., description="Last update, epoch milliseconds")
    has_dataloss: bool = Field(..., alias="hasDataloss")


class LogListingResponse(BaseModel):
    logs: List[LogListingEntry]


configure_logging()

app = FastAPI(title="Progress Guard", version=ENGINE_VERSION)

DEV_CORS = env_truthy(ENV_DEV_CORS)

if DEV_CORS:
    dev_ports = range(5173, 5181)
    allow_origins = [f"http://127.0.0.1:{port}" for port in dev_ports] + [
        f"http://localhost:{port}" for port in dev_ports
    ]
else:
    allow_origins = [
        "http://127.0.0.1:5173",
        "http://localhost:5173",
    ]

app.add_middleware(
    CORSMiddleware,
    allow_origins=allow_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


ENGINE_CACHE_SIZE = 8

_ENGINE_CACHE_LOCK = threading.Lock()


@lru_cache(maxsize=ENGINE_CACHE_SIZE)
def _engine_for(config: Tuple[str, str]) -> ReconciliationEngine:
    baselines, incidents = open_stores(*config)
    return ReconciliationEngine(baselines, incidents)


def get_engine() -> ReconciliationEngine:
    # One engine per resolved store config, so every request shares its lock registry.
    config = resolve_store_config()
    with _ENGINE_CACHE_LOCK:
        return _engine_for(config)


def require_admin(
    x_admin_password: Optional[str] = Header(default=None, alias=ADMIN_PASSWORD_HEADER),
) -> None:
    expected = env_str(ENV_ADMIN_PASSWORD)
    if expected is None:
        return
    supplied = x_admin_password if isinstance(x_admin_password, str) else ""
    if not hmac.compare_digest(supplied.encode("utf-8"), expected.encode("utf-8")):
        raise HTTPException(status_code=403, detail="Incorrect password.")


@app.exception_handler(StoreUnavailableError)
async def _store_unavailable_handler(request: Request, exc: StoreUnavailableError) -> JSONResponse:
    return JSONResponse(status_code=503, content=exc.to_payload())


@app.exception_handler(MalformedInputError)
async def _malformed_input_handler(request: Request, exc: MalformedInputError) -> JSONResponse:
    return JSONResponse(status_code=422, content=exc.to_payload())


def _not_found(player_name: str) -> JSONResponse:
    return JSONResponse(
        status_code=404,
        content={
            "status": DeleteOutcome.NOT_FOUND.value,
            "playerName": player_name,
            "message": "No log found for player.",
        },
    )


@app.get("/health")
def health():
    backend, _ = resolve_store_config()
    return {
        "ok": True,
        "version": ENGINE_VERSION,
        "store_backend": backend,
        "time": datetime.now(timezone.utc).isoformat(),
    }


@app.post("/log", response_model=LogSubmitResponse)
def submit_log(req: SnapshotPayloadV1, engine: ReconciliationEngine = Depends(get_engine)):
    snapshot = snapshot_from_payload(req)
    outcome = engine.submit(snapshot.player_id, snapshot)
    return LogSubmitResponse(
        status=outcome.result.value,
        message=outcome.message,
        player_name=outcome.player_id,
        reasons=list(outcome.reasons),
    )


@app.get("/logs", response_model=LogListingResponse)
def list_logs(
    dataloss: bool = False,
    q: Optional[str] = None,
    engine: ReconciliationEngine = Depends(get_engine),
):
    rows = engine.list_players(dataloss=dataloss, query=q)
    return LogListingResponse(
        logs=[
            LogListingEntry(
                name=row.player_id,
                time=int(row.updated_at * 1000),
                has_dataloss=row.has_dataloss,
            )
            for row in rows
        ]
    )


@app.get("/logs/{player_name:path}", dependencies=[Depends(require_admin)])
def get_log(player_name: str, engine: ReconciliationEngine = Depends(get_engine)):
    view = engine.get_player_view(player_name)
    if view is None:
        return _not_found(player_name)

    payload: Dict[str, Any] = {
        "playerName": view.player_id,
        "log": snapshot_to_record(view.baseline) if view.baseline is not None else None,
        "dataloss": incident_to_record(view.incident) if view.incident is not None else None,
    }
    return payload


@app.delete("/logs/{player_name:path}", dependencies=[Depends(require_admin)])
def delete_log(player_name: str, engine: ReconciliationEngine = Depends(get_engine)):
    outcome = engine.delete_player(player_name)
    if outcome is DeleteOutcome.NOT_FOUND:
        return _not_found(player_name)
    return {
        "status": outcome.value,
        "playerName": player_name,
        "message": "Log deleted successfully.",
    }
