import threading
from contextlib import contextmanager
from typing import Dict, Hashable, List

class KeyedLock:
    """
    Mutual exclusion scoped to a key.

    Threads holding different keys never block each other. An entry is dropped
    as soon as no thread holds or waits for its key, so the table only ever
    contains keys that are in use.
    """

    def __init__(self):
        self._guard = threading.Lock()
        # key -> [lock, number of threads holding or waiting]
        self._entries: Dict[Hashable, List] = {}

    @contextmanager
    def hold(self, key: Hashable):
        with self._guard:
            entry = self._entries.get(key)
            if entry is None:
                entry = [threading.Lock(), 0]
                self._entries[key] = entry
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
                    del self._entries[key]

    def active_keys(self) -> int:
        with self._guard:
            return len(self._entries)

# Serializes rating recomputation per tutor (keyed by the tutor's user id)
tutor_stats_lock = KeyedLock()
