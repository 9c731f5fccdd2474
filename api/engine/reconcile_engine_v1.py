from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import List, Tuple

from api.engine.errors import MalformedInputError, StoreUnavailableError
from api.engine.player_locks import PlayerLockRegistry
from api.engine.regression_detect_v1 import detect_regression
from api.engine.snapshot_v1 import Incident, Snapshot
from api.engine.stores import BaselineStore, IncidentStore


LOGGER = logging.getLogger(__name__)


class SubmitResult(str, Enum):
    CREATED = "CREATED"
    UPDATED = "UPDATED"
    REGRESSION_DETECTED = "REGRESSION_DETECTED"
    RECOVERED = "RECOVERED"


SUBMIT_MESSAGES = {
    SubmitResult.CREATED: "New log created.",
    SubmitResult.UPDATED: "Log updated.",
    SubmitResult.REGRESSION_DETECTED: "Dataloss detected and logged.",
    SubmitResult.RECOVERED: "Player has recovered. Dataloss log removed and log updated.",
}


class DeleteOutcome(str, Enum):
    DELETED = "DELETED"
    NOT_FOUND = "NOT_FOUND"


@dataclass(frozen=True)
class SubmitOutcome:
    result: SubmitResult
    player_id: str
    reasons: Tuple[str, ...] = ()

    @property
    def message(self) -> str:
        return SUBMIT_MESSAGES[self.result]


@dataclass(frozen=True)
class PlayerView:
    player_id: str
    baseline: Snapshot | None
    incident: Incident | None


@dataclass(frozen=True)
class PlayerListing:
    player_id: str
    updated_at: float
    has_dataloss: bool


class ReconciliationEngine:
    """Decides, per submitted snapshot, whether a player's progress regressed.

    Per player the engine moves between three states: no baseline, tracking
    (baseline advances with every clean submission) and incident (baseline is
    frozen at its last good value until a submission gets back to it). The
    engine keeps no state of its own between calls; everything lives in the
    two stores, and each call runs inside the player's lock.
    """

    def __init__(
        self,
        baselines: BaselineStore,
        incidents: IncidentStore,
        locks: PlayerLockRegistry | None = None,
    ):
        self._baselines = baselines
        self._incidents = incidents
        self._locks = locks if locks is not None else PlayerLockRegistry()

    def submit(self, player_id: str, snapshot: Snapshot) -> SubmitOutcome:
        if not isinstance(player_id, str) or player_id.strip() == "":
            raise MalformedInputError(["playerName must be a non-empty string"])
        if snapshot.player_id != player_id:
            raise MalformedInputError(
                [f"snapshot belongs to player {snapshot.player_id!r}, not {player_id!r}"]
            )

        with self._locks.hold(player_id):
            return self._submit_locked(player_id, snapshot)

    def _submit_locked(self, player_id: str, snapshot: Snapshot) -> SubmitOutcome:
        baseline = self._baselines.get(player_id)
        if baseline is None:
            self._baselines.put(player_id, snapshot)
            LOGGER.info("New log created for player %s", player_id)
            return SubmitOutcome(result=SubmitResult.CREATED, player_id=player_id)

        incident = self._incidents.get(player_id)

        if incident is None:
            report = detect_regression(baseline, snapshot)
            if report.is_regression:
                # Baseline stays frozen at the pre-loss value; recovery is measured against it.
                self._incidents.put(
                    player_id,
                    Incident(
                        player_id=player_id,
                        baseline_snapshot=baseline,
                        regressed_snapshot=snapshot,
                        reasons=tuple(report.reasons),
                    ),
                )
                LOGGER.warning(
                    "Dataloss detected for player %s: %s",
                    player_id,
                    ", ".join(sorted(report.reasons)),
                )
                return SubmitOutcome(
                    result=SubmitResult.REGRESSION_DETECTED,
                    player_id=player_id,
                    reasons=tuple(sorted(report.reasons)),
                )

            self._baselines.put(player_id, snapshot)
            LOGGER.info("Log updated for player %s", player_id)
            return SubmitOutcome(result=SubmitResult.UPDATED, player_id=player_id)

        report = detect_regression(incident.baseline_snapshot, snapshot)
        if report.is_regression:
            LOGGER.info(
                "Player %s still below pre-incident baseline: %s",
                player_id,
                ", ".join(sorted(report.reasons)),
            )
            return SubmitOutcome(
                result=SubmitResult.REGRESSION_DETECTED,
                player_id=player_id,
                reasons=tuple(sorted(report.reasons)),
            )

        self._recover(player_id, baseline, snapshot)
        LOGGER.info("Player %s has recovered from dataloss", player_id)
        return SubmitOutcome(result=SubmitResult.RECOVERED, player_id=player_id)

    def _recover(self, player_id: str, previous_baseline: Snapshot, snapshot: Snapshot) -> None:
        self._baselines.put(player_id, snapshot)
        try:
            self._incidents.delete(player_id)
        except StoreUnavailableError:
            try:
                self._baselines.put(player_id, previous_baseline)
            except StoreUnavailableError:
                LOGGER.exception(
                    "Could not restore baseline for player %s after failed incident delete",
                    player_id,
                )
            raise

    def delete_player(self, player_id: str) -> DeleteOutcome:
        with self._locks.hold(player_id):
            # Incident first: a failure between the two deletes leaves a plain tracked baseline.
            removed_incident = self._incidents.delete(player_id)
            removed_baseline = self._baselines.delete(player_id)

        if not (removed_incident or removed_baseline):
            return DeleteOutcome.NOT_FOUND
        LOGGER.info("Deleted logs for player %s", player_id)
        return DeleteOutcome.DELETED

    def has_open_incident(self, player_id: str) -> bool | None:
        """True or False for a known player; None when nothing is stored for them."""
        view = self.get_player_view(player_id)
        if view is None:
            return None
        return view.incident is not None

    def get_player_view(self, player_id: str) -> PlayerView | None:
        with self._locks.hold(player_id):
            baseline = self._baselines.get(player_id)
            incident = self._incidents.get(player_id)

        if baseline is None and incident is None:
            return None
        return PlayerView(player_id=player_id, baseline=baseline, incident=incident)

    def list_players(self, dataloss: bool = False, query: str | None = None) -> List[PlayerListing]:
        incident_ids = set(self._incidents.list_player_ids())
        needle = query.strip().lower() if isinstance(query, str) else ""

        rows: List[PlayerListing] = []
        for entry in self._baselines.list_entries():
            has_dataloss = entry.player_id in incident_ids
            if has_dataloss != dataloss:
                continue
            if needle != "" and needle not in entry.player_id.lower():
                continue
            rows.append(
                PlayerListing(
                    player_id=entry.player_id,
                    updated_at=entry.updated_at,
                    has_dataloss=has_dataloss,
                )
            )

        return sorted(rows, key=lambda row: (-row.updated_at, row.player_id))
