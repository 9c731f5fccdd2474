"""One JSON file per player on disk.

Layout under the data directory::

    players/<player>.json    current baseline snapshot
    dataloss/<player>.json   open incident, if any

File names are the percent-encoded player id, so ids with path separators
stay inside their directory and ``x-dataloss`` never collides with ``x``.
Ids whose encoding would pass the file name limit are stored as
``+<sha256>.json`` instead; ``quote`` always escapes ``+``, so the two forms
cannot collide. Listing reads the player name back out of such records.
"""

from __future__ import annotations

import hashlib
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Callable, Dict, List
from urllib.parse import quote, unquote

from api.engine.errors import MalformedInputError, StoreUnavailableError
from api.engine.snapshot_v1 import (
    Incident,
    Snapshot,
    incident_from_record,
    incident_to_record,
    parse_snapshot_payload,
    snapshot_to_record,
)
from api.engine.stores import StoreEntry


LOGGER = logging.getLogger(__name__)

PLAYERS_DIRNAME = "players"
DATALOSS_DIRNAME = "dataloss"
RECORD_SUFFIX = ".json"
DIGEST_PREFIX = "+"
# Well under the common 255-byte NAME_MAX once the suffix is added.
MAX_ENCODED_NAME_LENGTH = 200


def encode_player_filename(player_id: str) -> str:
    encoded = quote(player_id, safe="")
    if encoded.startswith("."):
        # Leading dots are reserved for temp files.
        encoded = "%2E" + encoded[1:]
    if len(encoded) > MAX_ENCODED_NAME_LENGTH:
        encoded = DIGEST_PREFIX + hashlib.sha256(player_id.encode("utf-8")).hexdigest()
    return encoded + RECORD_SUFFIX


def _is_record_filename(filename: str) -> bool:
    return filename.endswith(RECORD_SUFFIX) and not filename.startswith(".")


def decode_player_filename(filename: str) -> str | None:
    """Player id for a percent-encoded file name; None for digest names and non-records."""
    if not _is_record_filename(filename) or filename.startswith(DIGEST_PREFIX):
        return None
    return unquote(filename[: -len(RECORD_SUFFIX)])


def _read_record(path: Path, operation: str, player_id: str | None) -> Any:
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return None
    except OSError as exc:
        raise StoreUnavailableError(operation, player_id, str(exc)) from exc

    try:
        return json.loads(text)
    except ValueError as exc:
        raise StoreUnavailableError(operation, player_id, f"unreadable record {path.name}: {exc}") from exc


def _write_record(path: Path, payload: Dict[str, Any], operation: str, player_id: str) -> None:
    tmp_name = None
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with tempfile.NamedTemporaryFile(
            "w",
            encoding="utf-8",
            dir=str(path.parent),
            prefix=".",
            suffix=".tmp",
            delete=False,
        ) as handle:
            tmp_name = handle.name
            json.dump(payload, handle, indent=2, sort_keys=True, ensure_ascii=False)
        os.replace(tmp_name, path)
        tmp_name = None
    except OSError as exc:
        raise StoreUnavailableError(operation, player_id, str(exc)) from exc
    finally:
        if tmp_name is not None:
            try:
                os.unlink(tmp_name)
            except OSError:
                LOGGER.warning("Could not remove temp record %s", tmp_name)


def _delete_record(path: Path, operation: str, player_id: str) -> bool:
    try:
        path.unlink()
    except FileNotFoundError:
        return False
    except OSError as exc:
        raise StoreUnavailableError(operation, player_id, str(exc)) from exc
    return True


def _list_record_files(directory: Path, operation: str) -> List[Path]:
    if not directory.is_dir():
        return []
    try:
        return sorted(p for p in directory.iterdir() if _is_record_filename(p.name))
    except OSError as exc:
        raise StoreUnavailableError(operation, None, str(exc)) from exc


def _baseline_record_name(raw: Any) -> Any:
    return raw.get("playerName") if isinstance(raw, dict) else None


def _incident_record_name(raw: Any) -> Any:
    previous = raw.get("previousData") if isinstance(raw, dict) else None
    return _baseline_record_name(previous)


def _record_player_id(path: Path, operation: str, read_name: Callable[[Any], Any]) -> str | None:
    player_id = decode_player_filename(path.name)
    if player_id is not None:
        return player_id

    raw = _read_record(path, operation, None)
    if raw is None:
        # Deleted between listing and read.
        return None
    player_id = read_name(raw)
    if not isinstance(player_id, str) or player_id == "":
        raise StoreUnavailableError(operation, None, f"unreadable record {path.name}: no player name")
    return player_id


class JsonBaselineStore:
    def __init__(self, data_dir: Path):
        self.directory = Path(data_dir) / PLAYERS_DIRNAME

    def _path(self, player_id: str) -> Path:
        return self.directory / encode_player_filename(player_id)

    def get(self, player_id: str) -> Snapshot | None:
        raw = _read_record(self._path(player_id), "baseline.get", player_id)
        if raw is None:
            return None
        try:
            return parse_snapshot_payload(raw)
        except MalformedInputError as exc:
            raise StoreUnavailableError("baseline.get", player_id, str(exc)) from exc

    def put(self, player_id: str, snapshot: Snapshot) -> None:
        _write_record(self._path(player_id), snapshot_to_record(snapshot), "baseline.put", player_id)

    def delete(self, player_id: str) -> bool:
        return _delete_record(self._path(player_id), "baseline.delete", player_id)

    def list_entries(self) -> List[StoreEntry]:
        entries: List[StoreEntry] = []
        for path in _list_record_files(self.directory, "baseline.list"):
            player_id = _record_player_id(path, "baseline.list", _baseline_record_name)
            if player_id is None:
                continue
            try:
                updated_at = path.stat().st_mtime
            except FileNotFoundError:
                # Deleted between listing and stat.
                continue
            except OSError as exc:
                raise StoreUnavailableError("baseline.list", player_id, str(exc)) from exc
            entries.append(StoreEntry(player_id=player_id, updated_at=updated_at))
        return entries


class JsonIncidentStore:
    def __init__(self, data_dir: Path):
        self.directory = Path(data_dir) / DATALOSS_DIRNAME

    def _path(self, player_id: str) -> Path:
        return self.directory / encode_player_filename(player_id)

    def get(self, player_id: str) -> Incident | None:
        raw = _read_record(self._path(player_id), "incident.get", player_id)
        if raw is None:
            return None
        try:
            return incident_from_record(raw)
        except MalformedInputError as exc:
            raise StoreUnavailableError("incident.get", player_id, str(exc)) from exc

    def put(self, player_id: str, incident: Incident) -> None:
        _write_record(self._path(player_id), incident_to_record(incident), "incident.put", player_id)

    def delete(self, player_id: str) -> bool:
        return _delete_record(self._path(player_id), "incident.delete", player_id)

    def list_player_ids(self) -> List[str]:
        player_ids: List[str] = []
        for path in _list_record_files(self.directory, "incident.list"):
            player_id = _record_player_id(path, "incident.list", _incident_record_name)
            if player_id is not None:
                player_ids.append(player_id)
        return player_ids
