"""
In-process exclusive sections keyed by an arbitrary hashable tuple.

Used for the balance tuple (employee_id, leave_type_id, year): every ledger
mutation for one tuple runs inside ``hold(key)`` until its transaction commits.
Different keys never contend. Across processes the row lock taken by the
ledger (SELECT ... FOR UPDATE) provides the same guarantee on PostgreSQL.
"""
import threading
from contextlib import contextmanager
from typing import Dict, Hashable, Iterator, List


class KeyedLockRegistry:
    def __init__(self):
        self._guard = threading.Lock()
        # key -> [lock, number of callers holding or waiting]
        self._locks: Dict[Hashable, List] = {}

    @contextmanager
    def hold(self, key: Hashable) -> Iterator[None]:
        with self._guard:
            entry = self._locks.get(key)
            if entry is None:
                entry = self._locks[key] = [threading.Lock(), 0]
            entry[1] += 1
        try:
            with entry[0]:
                yield
        finally:
            with self._guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._locks[key]

    def __len__(self) -> int:
        """Keys currently held or waited on."""
        return len(self._locks)


# Process-wide registry for balance tuples
balance_locks = KeyedLockRegistry()
