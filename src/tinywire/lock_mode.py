from __future__ import annotations

from enum import Enum


class LockMode(Enum):
    """Select locking behavior for lazy singleton construction.

    Registry inserts are always atomic per key. The lock mode only decides
    whether two threads that resolve the same not-yet-built singleton may both
    construct it.
    """

    THREAD = "thread"
    """Guard singleton construction with one ``threading.RLock`` per type.

    The lock is double-checked against the singleton store and released before
    field injection, so each singleton type is constructed at most once.
    """

    NONE = "none"
    """Disable construction locking; concurrent first resolutions may both build.

    Lazy promotion is last-write-wins in this mode.
    """
