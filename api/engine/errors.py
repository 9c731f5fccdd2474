from __future__ import annotations

from typing import Any, Dict, List


class MalformedInputError(ValueError):
    code = "MALFORMED_INPUT"

    def __init__(self, problems: List[str]):
        self.problems = [str(p) for p in problems if isinstance(p, str) and p != ""] or ["invalid snapshot payload"]
        super().__init__(f"{self.code}: " + "; ".join(self.problems))

    def to_payload(self) -> Dict[str, Any]:
        return {
            "status": "ERROR",
            "code": self.code,
            "message": "Snapshot payload rejected before reconciliation.",
            "problems": list(self.problems),
        }


class StoreUnavailableError(RuntimeError):
    code = "STORE_UNAVAILABLE"

    def __init__(self, operation: str, player_id: str | None, reason: str):
        self.operation = str(operation or "")
        self.player_id = player_id if isinstance(player_id, str) and player_id else None
        self.reason = str(reason or "store operation failed")
        super().__init__(f"{self.code}: {self.operation} player_id={self.player_id} reason={self.reason}")

    def to_payload(self) -> Dict[str, Any]:
        return {
            "status": "ERROR",
            "code": self.code,
            "message": "Progress store unavailable. Retry the request.",
            "operation": self.operation,
            "player_id": self.player_id,
            "reason": self.reason,
        }
