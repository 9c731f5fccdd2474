from __future__ import annotations

import threading
import time
import unittest
from concurrent.futures import ThreadPoolExecutor

from api.engine.player_locks import PlayerLockRegistry
from api.engine.reconcile_engine_v1 import ReconciliationEngine, SubmitResult
from api.engine.stores import InMemoryBaselineStore, InMemoryIncidentStore
from tests.progress_fixtures import snap


class _SlowIncidentStore(InMemoryIncidentStore):
    """Widens the read-decide-write window so unserialized submits would race."""

    def __init__(self) -> None:
        super().__init__()
        self.puts = 0

    def get(self, player_id):
        row = super().get(player_id)
        time.sleep(0.01)
        return row

    def put(self, player_id, incident):
        self.puts += 1
        super().put(player_id, incident)


class PlayerLockRegistryTests(unittest.TestCase):
    def test_same_player_is_serialized(self) -> None:
        registry = PlayerLockRegistry()
        inside = []
        overlap = []
        guard = threading.Lock()

        def worker() -> None:
            with registry.hold("alice"):
                with guard:
                    inside.append(1)
                    if len(inside) > 1:
                        overlap.append(True)
                time.sleep(0.005)
                with guard:
                    inside.pop()

        with ThreadPoolExecutor(max_workers=8) as pool:
            for future in [pool.submit(worker) for _ in range(16)]:
                future.result()

        self.assertEqual(overlap, [])
        self.assertEqual(registry.active_count(), 0)

    def test_different_players_do_not_block(self) -> None:
        registry = PlayerLockRegistry()
        entered = threading.Event()

        with registry.hold("alice"):
            def other() -> None:
                with registry.hold("bob"):
                    entered.set()

            thread = threading.Thread(target=other)
            thread.start()
            self.assertTrue(entered.wait(timeout=2.0))
            thread.join(timeout=2.0)

    def test_concurrent_regressions_open_exactly_one_incident(self) -> None:
        baselines = InMemoryBaselineStore()
        incidents = _SlowIncidentStore()
        engine = ReconciliationEngine(baselines, incidents)
        engine.submit("alice", snap("alice", {"gold": 150}))

        with ThreadPoolExecutor(max_workers=8) as pool:
            futures = [
                pool.submit(engine.submit, "alice", snap("alice", {"gold": value}))
                for value in range(10, 90, 10)
            ]
            results = [future.result().result for future in futures]

        self.assertEqual(set(results), {SubmitResult.REGRESSION_DETECTED})
        self.assertEqual(incidents.puts, 1)


if __name__ == "__main__":
    unittest.main()
