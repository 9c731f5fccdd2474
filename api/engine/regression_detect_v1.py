from __future__ import annotations

import logging
from typing import FrozenSet, List, NamedTuple

from api.engine.snapshot_v1 import Snapshot


LOGGER = logging.getLogger(__name__)

STAT_REASON_PREFIX = "stats."
ITEM_REASON_PREFIX = "items."


class RegressionReport(NamedTuple):
    is_regression: bool
    reasons: FrozenSet[str]


def detect_regression(previous: Snapshot, current: Snapshot) -> RegressionReport:
    """Compare ``current`` against ``previous`` and report every field that lost progress.

    Stats regress on any decrease, with a stat missing from ``current`` read as 0.
    Item counts only guard items the player actually held (previous count > 0),
    again reading a missing current count as 0. Fields that only exist in
    ``current`` never regress, and there is no tolerance: any decrease counts.
    """
    reasons: List[str] = []

    for name in sorted(previous.stats):
        previous_value = previous.stats[name]
        current_value = current.stats.get(name, 0)
        if current_value < previous_value:
            LOGGER.debug(
                "Stat mismatch detected: player=%s stat=%s previous=%s current=%s",
                current.player_id,
                name,
                previous_value,
                current_value,
            )
            reasons.append(STAT_REASON_PREFIX + name)

    for name in sorted(previous.items):
        previous_count = previous.items[name]
        if previous_count <= 0:
            continue
        current_count = current.items.get(name, 0)
        if current_count < previous_count:
            LOGGER.debug(
                "Sword mismatch detected: player=%s sword=%s previous=%s current=%s",
                current.player_id,
                name,
                previous_count,
                current_count,
            )
            reasons.append(ITEM_REASON_PREFIX + name)

    return RegressionReport(is_regression=len(reasons) > 0, reasons=frozenset(reasons))
