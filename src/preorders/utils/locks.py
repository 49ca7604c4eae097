"""Per-key mutual exclusion at the storage boundary.

Read-modify-write sequences against the same record (a cart, an order, the
bookings of one stall on one day) are serialized on a lock named after that
record. Locks for several keys are always taken in sorted order.
"""

import threading
from contextlib import contextmanager


class KeyedLock:
    def __init__(self) -> None:
        self._guard = threading.Lock()
        # key -> [lock, number of holders and waiters]
        self._locks: dict[str, list] = {}

    def _claim(self, key: str) -> threading.Lock:
        with self._guard:
            entry = self._locks.get(key)
            if entry is None:
                entry = self._locks[key] = [threading.Lock(), 0]
            entry[1] += 1
            return entry[0]

    def _unclaim(self, key: str) -> None:
        with self._guard:
            entry = self._locks[key]
            entry[1] -= 1
            if entry[1] == 0:
                del self._locks[key]

    def __len__(self) -> int:
        return len(self._locks)

    @contextmanager
    def hold(self, *keys: str):
        """Hold the locks for every distinct key in ``keys`` while the block runs.

        A key's lock is dropped from the table once nobody holds or awaits it.
        """
        ordered = sorted(set(keys))
        claimed = []
        acquired = []
        try:
            for key in ordered:
                lock = self._claim(key)
                claimed.append(key)
                lock.acquire()
                acquired.append(lock)
            yield
        finally:
            for lock in reversed(acquired):
                lock.release()
            for key in reversed(claimed):
                self._unclaim(key)


record_locks = KeyedLock()


def cart_key(cart_id) -> str:
    return f"cart:{cart_id}"


def customer_key(customer_id) -> str:
    return f"customer:{customer_id}"


def order_key(order_id) -> str:
    return f"order:{order_id}"


def bookings_key(stall_id, day: str) -> str:
    return f"bookings:{stall_id}:{day}"
