"""
Optimistic local mutation with rollback.

Snapshot the state slice, apply the mutation locally, then commit remotely.
If the commit raises, the state is rolled back and the error re-raised.

The commit runs outside `lock`, so other updates to the same state can land
while it is in flight. A plain rollback would overwrite them; pass `restore`
to merge the snapshot into whatever the state holds at rollback time.
"""

from contextlib import nullcontext
from typing import Callable, Optional, TypeVar

T = TypeVar("T")
R = TypeVar("R")


def optimistic_update(
    read: Callable[[], T],
    write: Callable[[T], None],
    mutate: Callable[[T], T],
    commit: Callable[[T], R],
    lock=None,
    restore: Optional[Callable[[T, T, T], T]] = None,
) -> R:
    """
    Args:
        read: returns the current state slice
        write: replaces the state slice
        mutate: builds the new state from the snapshot (must not modify it in place)
        commit: persists the new state remotely; raising triggers the rollback
        lock: held while reading, mutating and rolling back local state
        restore: restore(snapshot, updated, current) -> state to write back on
            failure. Defaults to the snapshot itself.

    Returns:
        Whatever commit returns.
    """
    guard = lock if lock is not None else nullcontext()
    with guard:
        snapshot = read()
        updated = mutate(snapshot)
        write(updated)
    try:
        return commit(updated)
    except Exception:
        with guard:
            if restore is None:
                write(snapshot)
            else:
                write(restore(snapshot, updated, read()))
        raise
