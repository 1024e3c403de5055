from __future__ import annotations

import datetime
import decimal
import pathlib
import uuid
from dataclasses import dataclass
from typing import Any, TypeGuard

from tinywire._internal.type_checks import is_abstract_class, is_runtime_class


@dataclass(frozen=True, slots=True)
class ConstructionPolicy:
    """Decide which requested types the container may build on demand.

    Builtins, value types and abstract classes have no meaningful injectable
    constructor; asking for one of them without a registration is reported as a
    missing dependency instead of an attempt to call it.
    """

    ignored_base_types: tuple[type[Any], ...] = (
        pathlib.PurePath,
        datetime.datetime,
        datetime.date,
        datetime.time,
        datetime.timedelta,
        uuid.UUID,
        decimal.Decimal,
    )

    def is_constructible(self, candidate: object) -> TypeGuard[type[Any]]:
        """Return true when a candidate can be instantiated by the resolver.

        Args:
            candidate: Declared dependency type being checked.

        """
        if not is_runtime_class(candidate):
            return False
        if candidate.__module__ == "builtins":
            return False
        if is_abstract_class(candidate):
            return False
        if issubclass(candidate, type):
            return False
        return not issubclass(candidate, self.ignored_base_types)

    def describe_rejection(self, candidate: object) -> str:
        """Return a short human-readable reason for a rejected candidate."""
        if not is_runtime_class(candidate):
            return "Only classes can be resolved."
        if is_abstract_class(candidate):
            return "Abstract classes and protocols need a registered binding."
        return "Builtin and value types need a registered binding."
