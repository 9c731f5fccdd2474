"""Domain package for player progress reconciliation."""

__all__ = [
    "constants",
    "errors",
    "log_config",
    "player_locks",
    "reconcile_engine_v1",
    "regression_detect_v1",
    "snapshot_v1",
    "stores",
    "utils",
]
