from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass
from typing import Any


@dataclass(slots=True)
class BuildFrame:
    """One class being built in the current context."""

    cls: type[Any]
    promoted: bool = False
    """Whether the instance was stored before wiring, so a later request finds it."""
    wiring: bool = False
    """Whether the constructor returned and fields are being injected."""


# Each thread starts with an empty context, so every thread gets its own stack.
_resolution_stack: ContextVar[tuple[BuildFrame, ...]] = ContextVar(
    "tinywire_resolution_stack",
    default=(),
)


def current_stack() -> tuple[type[Any], ...]:
    """Return the classes currently being built in this context, outermost first."""
    return tuple(frame.cls for frame in _resolution_stack.get())


def closes_cycle(cls: type[Any]) -> bool:
    """Return whether building ``cls`` again in this context would never terminate.

    Building a class that is already on the stack is allowed only when every
    frame since its latest occurrence has left its constructor and at least one
    of them was promoted: the next round then reaches a stored instance instead
    of building again. Constructor cycles and field cycles made only of
    transient classes close a cycle.
    """
    frames = _resolution_stack.get()
    for index in range(len(frames) - 1, -1, -1):
        if frames[index].cls is cls:
            tail = frames[index:]
            return not all(frame.wiring for frame in tail) or not any(
                frame.promoted for frame in tail
            )
    return False


@contextmanager
def building(cls: type[Any]) -> Iterator[BuildFrame]:
    """Push a frame for ``cls`` onto the resolution stack for the duration of the block."""
    frame = BuildFrame(cls)
    token = _resolution_stack.set((*_resolution_stack.get(), frame))
    try:
        yield frame
    finally:
        _resolution_stack.reset(token)
