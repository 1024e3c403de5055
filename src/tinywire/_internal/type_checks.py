from __future__ import annotations

import inspect
import types
from typing import Any, Protocol, TypeGuard


def is_runtime_class(candidate: object) -> TypeGuard[type[Any]]:
    """Return true when candidate is a runtime class safe for class-only operations.

    Args:
        candidate: Value being checked for eligibility or runtime type constraints.

    """
    return isinstance(candidate, type) and not isinstance(candidate, types.GenericAlias)


def is_protocol_class(candidate: type[Any]) -> bool:
    """Return true when candidate is a ``typing.Protocol`` definition."""
    return Protocol in candidate.__bases__ or bool(getattr(candidate, "_is_protocol", False))


def is_abstract_class(candidate: type[Any]) -> bool:
    """Return true when candidate cannot be instantiated directly."""
    return inspect.isabstract(candidate) or is_protocol_class(candidate)


__all__ = ["is_abstract_class", "is_protocol_class", "is_runtime_class"]
