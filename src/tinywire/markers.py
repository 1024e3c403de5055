from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum, auto
from typing import TYPE_CHECKING, Annotated, Any, TypeVar, Union, get_args, get_origin

from tinywire.exceptions import InvalidQualifierError

T = TypeVar("T")
C = TypeVar("C", bound=type[Any])
F = TypeVar("F")

LIFETIME_ATTR = "__tinywire_lifetime__"
INJECT_ATTR = "__tinywire_inject__"
QUALIFIER_KIND_ATTR = "__tinywire_qualifier_kind__"
CLASS_QUALIFIERS_ATTR = "__tinywire_qualifiers__"


class Lifetime(Enum):
    """Defines the lifetime of a class resolved by the container."""

    TRANSIENT = auto()
    """A new instance is created every time the class is resolved."""

    SINGLETON = auto()
    """A single instance is created and shared for the lifetime of the container."""


def singleton(cls: C) -> C:
    """Mark a class as a singleton.

    The marker is read from the class itself and is not inherited by
    subclasses.

    Examples:
        .. code-block:: python

            @singleton
            class Settings: ...

    """
    setattr(cls, LIFETIME_ATTR, Lifetime.SINGLETON)
    return cls


def inject(func: F) -> F:
    """Mark a constructor as the injection constructor.

    Decorate ``__init__`` or a classmethod that acts as an alternate
    constructor. Decorating a class marks its ``__init__``, which is the way to
    mark generated initializers such as the one of a dataclass. A constructor
    that can be called without arguments is eligible even when it is not
    marked.

    Examples:
        .. code-block:: python

            class Repository:
                @inject
                def __init__(self, db: Database) -> None:
                    self.db = db

    """
    target = func.__func__ if isinstance(func, (classmethod, staticmethod)) else func
    setattr(target, INJECT_ATTR, True)
    return func


def qualifier(marker_cls: C) -> C:
    """Tag a marker class as a qualifier kind.

    Instances of a qualifier class distinguish several bindings of one
    declared type. Qualifier classes should compare by value and be hashable,
    which frozen dataclasses give for free.
    """
    setattr(marker_cls, QUALIFIER_KIND_ATTR, True)
    return marker_cls


def is_qualifier(marker: object) -> bool:
    """Return whether ``marker`` is an instance of a ``@qualifier`` class."""
    return vars(type(marker)).get(QUALIFIER_KIND_ATTR, False) is True


@qualifier
@dataclass(frozen=True, slots=True)
class Named:
    """Qualify a binding by name.

    Examples:
        .. code-block:: python

            class Root:
                primary: Injected[Annotated[Database, Named("primary")]]

    """

    value: str


def qualified(*markers: object) -> Callable[[C], C]:
    """Attach qualifier markers to a class.

    ``Container.register_qualified_class`` uses these markers when called
    without an explicit qualifier.

    Raises:
        InvalidQualifierError: If a marker is not a qualifier instance.

    """
    for marker in markers:
        if not is_qualifier(marker):
            raise InvalidQualifierError(marker)

    def decorator(cls: C) -> C:
        current: tuple[object, ...] = vars(cls).get(CLASS_QUALIFIERS_ATTR, ())
        merged = list(current)
        for marker in markers:
            if marker not in merged:
                merged.append(marker)
        setattr(cls, CLASS_QUALIFIERS_ATTR, tuple(merged))
        return cls

    return decorator


class InjectedMarker:
    """Marks a class attribute annotation as an injectable field."""

    def __repr__(self) -> str:
        return "InjectedMarker()"


if TYPE_CHECKING:
    Injected = Union[T, T]  # noqa: UP007,PYI016
    """Mark a class attribute for field injection.

    At runtime ``Injected[T]`` becomes ``Annotated[T, InjectedMarker()]``.
    """

else:

    class Injected:
        """Mark a class attribute for field injection.

        At runtime ``Injected[T]`` resolves to ``Annotated[T, InjectedMarker()]``.
        Qualifier metadata of an ``Annotated`` argument is preserved.

        Examples:
            .. code-block:: python

                class Root:
                    leaf: Injected[Leaf]
                    node_a: Injected[Annotated[Node, Named("a")]]

        """

        def __class_getitem__(cls, item: T) -> Annotated[T, InjectedMarker]:
            if get_origin(item) is Annotated:
                args = get_args(item)
                inner = args[0]
                metadata = args[1:]
                return _build_annotated((inner, *metadata, InjectedMarker()))
            return _build_annotated((item, InjectedMarker()))


def is_injected_annotation(annotation: Any) -> bool:
    """Return True when annotation is Annotated[..., InjectedMarker()]."""
    if get_origin(annotation) is not Annotated:
        return False
    return any(isinstance(item, InjectedMarker) for item in get_args(annotation)[1:])


def _build_annotated(params: tuple[object, ...]) -> Any:
    """Return Annotated[...] with a pre-built params tuple (Py 3.10+ compatible)."""
    try:
        return Annotated.__class_getitem__(params)  # type: ignore[attr-defined]
    except AttributeError:
        return Annotated.__getitem__(params)  # type: ignore[attr-defined]


__all__ = [
    "Injected",
    "InjectedMarker",
    "Lifetime",
    "Named",
    "inject",
    "is_injected_annotation",
    "is_qualifier",
    "qualified",
    "qualifier",
    "singleton",
]
