from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Dict, Iterator, List


class PlayerLockRegistry:
    """Hands out one mutex per player id.

    Entries are reference counted and dropped once no caller holds or waits on
    them, so the registry only grows with the number of players in flight.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._entries: Dict[str, List] = {}

    @contextmanager
    def hold(self, player_id: str) -> Iterator[None]:
        with self._guard:
            entry = self._entries.get(player_id)
            if entry is None:
                entry = [threading.Lock(), 0]
                self._entries[player_id] = entry
            entry[1] += 1

        lock = entry[0]
        lock.acquire()
        try:
            yield
        finally:
            lock.release()
            with self._guard:
                entry[1] -= 1
                if entry[1] == 0:
                    self._entries.pop(player_id, None)

    def active_count(self) -> int:
        with self._guard:
            return len(self._entries)
