"""Progress snapshot and incident value types, plus their wire/record codec.

A snapshot travels as ``{"playerName": ..., "stats": {...}, "swords": {...}}``.
An incident record pairs the frozen baseline (``previousData``) with the first
regressing submission (``currentData``).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Annotated, Any, Dict, List, Mapping, Tuple, Union

from pydantic import AllowInfNan, BaseModel, ConfigDict, Field, StrictFloat, StrictInt, ValidationError, field_validator

from api.engine.errors import MalformedInputError


StatValue = Union[StrictInt, Annotated[StrictFloat, AllowInfNan(False)]]
SwordCount = Annotated[StrictInt, Field(ge=0)]


class SnapshotPayloadV1(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True, frozen=True)

    player_name: str = Field(..., alias="playerName", min_length=1, description="Stable player identifier")
    stats: Dict[str, StatValue] = Field(default_factory=dict)
    swords: Dict[str, SwordCount] = Field(default_factory=dict)

    @field_validator("player_name")
    @classmethod
    def _player_name_not_blank(cls, value: str) -> str:
        if value.strip() == "":
            raise ValueError("playerName must be a non-empty string")
        return value


@dataclass(frozen=True)
class Snapshot:
    player_id: str
    stats: Mapping[str, Union[int, float]] = field(default_factory=dict)
    items: Mapping[str, int] = field(default_factory=dict)

    def __post_init__(self) -> None:
        # Private copies behind read-only views; callers cannot mutate a snapshot.
        object.__setattr__(self, "stats", MappingProxyType(dict(self.stats)))
        object.__setattr__(self, "items", MappingProxyType(dict(self.items)))

    def __hash__(self) -> int:
        return hash((self.player_id, frozenset(self.stats.items()), frozenset(self.items.items())))


@dataclass(frozen=True)
class Incident:
    player_id: str
    baseline_snapshot: Snapshot
    regressed_snapshot: Snapshot
    reasons: Tuple[str, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "reasons", tuple(sorted(set(str(r) for r in self.reasons))))


def _validation_problems(exc: ValidationError) -> List[str]:
    problems: List[str] = []
    for err in exc.errors():
        loc = ".".join(str(part) for part in err.get("loc", ()))
        message = str(err.get("msg", "invalid value"))
        problems.append(f"{loc}: {message}" if loc else message)
    return problems


def snapshot_from_payload(payload: SnapshotPayloadV1) -> Snapshot:
    return Snapshot(
        player_id=payload.player_name,
        stats=dict(payload.stats),
        items=dict(payload.swords),
    )


def parse_snapshot_payload(raw: Any) -> Snapshot:
    if not isinstance(raw, dict):
        raise MalformedInputError(["snapshot payload must be a JSON object"])
    try:
        payload = SnapshotPayloadV1.model_validate(raw)
    except ValidationError as exc:
        raise MalformedInputError(_validation_problems(exc)) from exc
    return snapshot_from_payload(payload)


def snapshot_to_record(snapshot: Snapshot) -> Dict[str, Any]:
    return {
        "playerName": snapshot.player_id,
        "stats": {name: snapshot.stats[name] for name in sorted(snapshot.stats)},
        "swords": {name: snapshot.items[name] for name in sorted(snapshot.items)},
    }


def incident_to_record(incident: Incident) -> Dict[str, Any]:
    return {
        "previousData": snapshot_to_record(incident.baseline_snapshot),
        "currentData": snapshot_to_record(incident.regressed_snapshot),
        "reasons": list(incident.reasons),
    }


def incident_from_record(raw: Any) -> Incident:
    if not isinstance(raw, dict):
        raise MalformedInputError(["incident record must be a JSON object"])

    problems: List[str] = []
    snapshots: Dict[str, Snapshot] = {}
    for key in ("previousData", "currentData"):
        try:
            snapshots[key] = parse_snapshot_payload(raw.get(key))
        except MalformedInputError as exc:
            problems.extend(f"{key}.{problem}" for problem in exc.problems)

    reasons_raw = raw.get("reasons", [])
    if not isinstance(reasons_raw, list) or not all(isinstance(r, str) for r in reasons_raw):
        problems.append("reasons: must be a list of strings")

    if problems:
        raise MalformedInputError(problems)

    baseline = snapshots["previousData"]
    return Incident(
        player_id=baseline.player_id,
        baseline_snapshot=baseline,
        regressed_snapshot=snapshots["currentData"],
        reasons=tuple(reasons_raw),
    )
