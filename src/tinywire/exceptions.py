from __future__ import annotations

from collections.abc import Iterable
from typing import Any


def _type_name(value: Any) -> str:
    return getattr(value, "__qualname__", repr(value))


class TinyWireError(Exception):
    """Represent a base class for all tinywire-specific failures.

    Catch this type when you want to handle any tinywire error path without
    matching each concrete exception class individually.
    """


class DuplicateBindingError(TinyWireError):
    """Signal that a registration collides with an existing one for the same key.

    Raised by ``Container.register_singleton``,
    ``Container.register_qualified_instance``,
    ``Container.register_singleton_class`` and
    ``Container.register_qualified_class``. The earlier registration is kept.
    """

    def __init__(self, key: Any, qualifier: Any = None, *, kind: str = "singleton") -> None:
        self.key = key
        self.qualifier = qualifier
        if qualifier is None:
            msg = f"Duplicated {kind} binding for '{_type_name(key)}'."
        else:
            msg = f"Duplicated {kind} binding for '{_type_name(key)}' with qualifier {qualifier!r}."
        super().__init__(msg)


class InvalidQualifierError(TinyWireError):
    """Signal a marker that is not a qualifier kind, or a missing class qualifier.

    Typical fixes include decorating the marker class with ``@qualifier`` or
    attaching a marker to the concrete class with ``@qualified(...)``.
    """

    def __init__(self, marker: Any, msg: str | None = None) -> None:
        self.marker = marker
        if msg is None:
            msg = f"Marker {marker!r} is not a qualifier; decorate its class with @qualifier."
        super().__init__(msg)


class AmbiguousConstructorError(TinyWireError):
    """Signal that more than one constructor is eligible for injection.

    Keep a single ``@inject`` constructor (``__init__`` or one classmethod).
    """

    def __init__(self, key: type[Any], candidates: Iterable[str]) -> None:
        self.key = key
        self.candidates = tuple(candidates)
        names = ", ".join(self.candidates)
        super().__init__(
            f"Class '{_type_name(key)}' has more than one injectable constructor: {names}.",
        )


class NoAccessibleConstructorError(TinyWireError):
    """Signal that a class has no eligible constructor.

    A constructor is eligible when it is marked with ``@inject`` or can be
    called without arguments.
    """

    def __init__(self, key: Any, reason: str | None = None) -> None:
        self.key = key
        msg = f"No accessible constructor for injection class '{_type_name(key)}'."
        if reason:
            msg = f"{msg} {reason}"
        super().__init__(msg)


class AmbiguousQualifierError(TinyWireError):
    """Signal that several qualified bindings match the markers at one use-site."""

    def __init__(self, key: Any, declaring_type: Any, markers: Iterable[Any]) -> None:
        self.key = key
        self.declaring_type = declaring_type
        self.markers = tuple(markers)
        super().__init__(
            f"Qualifiers {list(self.markers)!r} match more than one binding for "
            f"'{_type_name(key)}' in '{_type_name(declaring_type)}'.",
        )


class MissingDependencyError(TinyWireError):
    """Signal that a constructor parameter or field cannot be resolved.

    ``owner`` is the class being built, ``name`` the parameter or field name
    and ``key`` the declared dependency type (``None`` when not annotated).
    """

    def __init__(self, owner: Any, name: str, key: Any, reason: str | None = None) -> None:
        self.owner = owner
        self.name = name
        self.key = key
        msg = (
            f"Cannot resolve dependency '{name}' of type '{_type_name(key)}' "
            f"for class '{_type_name(owner)}'."
        )
        if reason:
            msg = f"{msg} {reason}"
        super().__init__(msg)


class CircularDependencyError(MissingDependencyError):
    """Signal a dependency cycle that promotion cannot break.

    Constructor parameters must form a DAG. Field injections may form cycles
    only through singletons or qualified instances.
    """

    def __init__(self, owner: Any, name: str, key: Any, stack: Iterable[Any]) -> None:
        self.stack = tuple(stack)
        chain = " -> ".join(_type_name(item) for item in (*self.stack, key))
        super().__init__(owner, name, key, reason=f"Circular dependency: {chain}.")


class ConstructionError(TinyWireError):
    """Signal that instantiating a class or assigning a field raised.

    The original exception is available as ``__cause__``.
    """

    def __init__(self, key: Any, msg: str | None = None) -> None:
        self.key = key
        if msg is None:
            msg = f"Failed to create instance of '{_type_name(key)}' from its constructor."
        super().__init__(msg)
