from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Dict, List, Protocol, Tuple

from api.engine.snapshot_v1 import Incident, Snapshot


@dataclass(frozen=True)
class StoreEntry:
    player_id: str
    updated_at: float


class BaselineStore(Protocol):
    def get(self, player_id: str) -> Snapshot | None: ...

    def put(self, player_id: str, snapshot: Snapshot) -> None: ...

    def delete(self, player_id: str) -> bool: ...

    def list_entries(self) -> List[StoreEntry]: ...


class IncidentStore(Protocol):
    def get(self, player_id: str) -> Incident | None: ...

    def put(self, player_id: str, incident: Incident) -> None: ...

    def delete(self, player_id: str) -> bool: ...

    def list_player_ids(self) -> List[str]: ...


class InMemoryBaselineStore:
    def __init__(self) -> None:
        self._rows: Dict[str, Tuple[Snapshot, float]] = {}

    def get(self, player_id: str) -> Snapshot | None:
        row = self._rows.get(player_id)
        return row[0] if row is not None else None

    def put(self, player_id: str, snapshot: Snapshot) -> None:
        self._rows[player_id] = (snapshot, time.time())

    def delete(self, player_id: str) -> bool:
        return self._rows.pop(player_id, None) is not None

    def list_entries(self) -> List[StoreEntry]:
        return [StoreEntry(player_id=key, updated_at=row[1]) for key, row in sorted(self._rows.items())]


class InMemoryIncidentStore:
    def __init__(self) -> None:
        self._rows: Dict[str, Incident] = {}

    def get(self, player_id: str) -> Incident | None:
        return self._rows.get(player_id)

    def put(self, player_id: str, incident: Incident) -> None:
        self._rows[player_id] = incident

    def delete(self, player_id: str) -> bool:
        return self._rows.pop(player_id, None) is not None

    def list_player_ids(self) -> List[str]:
        return sorted(self._rows)
