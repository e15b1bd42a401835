import threading
from contextlib import contextmanager
from typing import Dict, Iterator
from uuid import UUID

_registry_guard = threading.Lock()
_apartment_locks: Dict[UUID, threading.Lock] = {}


def get_apartment_lock(apartment_id: UUID) -> threading.Lock:
    with _registry_guard:
        lock = _apartment_locks.get(apartment_id)
        if lock is None:
            lock = threading.Lock()
            _apartment_locks[apartment_id] = lock
        return lock


@contextmanager
def apartment_lock(apartment_id: UUID) -> Iterator[None]:
    """
    Serialize room assignment for one listing within this process.

    Handlers run on a threadpool, so two check-ins for the same listing can
    otherwise read the same free room. Cross-process exclusion comes from the
    row lock taken on the apartment inside the critical section.
    """
    lock = get_apartment_lock(apartment_id)
    with lock:
        yield
