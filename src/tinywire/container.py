from __future__ import annotations

import logging
import threading
from collections.abc import Iterable
from functools import partial
from typing import TYPE_CHECKING, Any, TypeVar

from tinywire._internal.construction_policy import ConstructionPolicy
from tinywire._internal.resolution_stack import building, closes_cycle, current_stack
from tinywire.exceptions import (
    AmbiguousConstructorError,
    CircularDependencyError,
    ConstructionError,
    InvalidQualifierError,
    MissingDependencyError,
    NoAccessibleConstructorError,
)
from tinywire.inspector import ConstructorDescriptor, MetadataInspector
from tinywire.lock_mode import LockMode
from tinywire.qualifiers import PromotionHook, QualifierMatcher, Undo
from tinywire.registry import MISSING, Registry

if TYPE_CHECKING:
    from typing_extensions import Self

T = TypeVar("T")

logger = logging.getLogger(__name__)
_USE_DEFAULT: Any = object()


class Container:
    """Build object graphs from constructor and field dependencies.

    ``resolve`` returns a ready instance of the requested class:

    1. a stored singleton is returned as is;
    2. otherwise the single eligible constructor is selected (``@inject`` or
       callable without arguments) and each parameter is resolved, qualified
       bindings first, then by recursively resolving the parameter type;
    3. the new instance is promoted to the singleton store when its class is
       ``@singleton`` or bound with ``register_singleton_class``;
    4. ``Injected[...]`` fields are resolved the same way and assigned.

    Promotion happens before fields are wired, so field references may form
    cycles through singletons and qualified instances. Constructor parameters
    must form a DAG; a constructor cycle raises ``CircularDependencyError``.

    The container registers itself as a singleton, so classes may depend on it.
    """

    def __init__(
        self,
        *,
        lock_mode: LockMode = LockMode.THREAD,
        inspector: MetadataInspector | None = None,
    ) -> None:
        """Initialize an empty container.

        Args:
            lock_mode: ``LockMode.THREAD`` constructs each singleton class at most
                once under concurrent resolution. ``LockMode.NONE`` skips the
                per-class lock; racing first resolutions may then each build an
                instance and the last promotion wins.
            inspector: Metadata inspector used to read constructors, fields and
                markers. Defaults to ``MetadataInspector()``.

        """
        self._lock_mode = lock_mode
        self._inspector = inspector or MetadataInspector()
        self._registry = Registry(self._inspector)
        self._matcher = QualifierMatcher(self._registry, self._build)
        self._policy = ConstructionPolicy()

        self._singleton_locks: dict[type[Any], threading.RLock] = {}
        self._singleton_locks_lock = threading.Lock()

        self._registry.register_singleton(type(self), self)

    @property
    def registry(self) -> Registry:
        """Return the bindings store of this container."""
        return self._registry

    def register_singleton(self, key: type[T], instance: T) -> Self:
        """Register a pre-built singleton instance for ``key``.

        Raises:
            DuplicateBindingError: If an instance is already registered for ``key``.

        """
        self._registry.register_singleton(key, instance)
        return self

    def register_qualified_instance(self, key: type[T], qualifier: object, instance: T) -> Self:
        """Register a pre-built instance of ``key`` under ``qualifier``.

        Examples:
            .. code-block:: python

                container.register_qualified_instance(Database, Named("replica"), replica)

        Raises:
            InvalidQualifierError: If ``qualifier`` is not a ``@qualifier`` instance.
            DuplicateBindingError: If ``(key, qualifier)`` is already registered.

        """
        self._registry.register_qualified_instance(key, qualifier, instance)
        return self

    def register_singleton_class(
        self,
        requested: type[Any],
        concrete: type[Any] | None = None,
    ) -> Self:
        """Treat ``concrete`` as a singleton and use it when ``requested`` is resolved.

        ``concrete`` defaults to ``requested``, which makes an unmarked class a
        singleton.

        Raises:
            DuplicateBindingError: If ``requested`` is already bound.

        """
        self._registry.register_singleton_class(requested, concrete or requested)
        return self

    def register_qualified_class(
        self,
        requested: type[Any],
        concrete: type[Any],
        *,
        qualifier: object | None = None,
    ) -> Self:
        """Build ``concrete`` lazily for use-sites of ``requested`` marked with ``qualifier``.

        Without ``qualifier``, the first marker attached to ``concrete`` with
        ``@qualified(...)`` is used. The built instance is memoized as a
        qualified instance. ``qualifier`` is keyword-only so that it cannot be
        swapped with ``concrete``.

        Raises:
            InvalidQualifierError: If ``qualifier`` is not a ``@qualifier``
                instance or ``concrete`` carries no qualifier marker.
            DuplicateBindingError: If ``(requested, qualifier)`` is already bound.

        """
        if qualifier is None:
            markers = self._inspector.qualifiers_on_class(concrete)
            if not markers:
                msg = (
                    f"Class '{concrete.__qualname__}' should be decorated with "
                    "@qualified(...) or registered with an explicit qualifier."
                )
                raise InvalidQualifierError(None, msg)
            qualifier = markers[0]
        self._registry.register_qualified_class(requested, qualifier, concrete)
        return self

    def resolve(self, cls: type[T]) -> T:
        """Return a fully constructed and wired instance of ``cls``.

        Raises:
            AmbiguousConstructorError: If ``cls`` has several eligible constructors.
            NoAccessibleConstructorError: If ``cls`` has no eligible constructor
                or cannot be instantiated at all.
            AmbiguousQualifierError: If a use-site matches several qualified bindings.
            MissingDependencyError: If a parameter or field cannot be resolved.
            ConstructionError: If a constructor or field assignment raises.

        """
        return self._build(cls)

    def inject_fields(self, instance: T) -> T:
        """Resolve and assign the ``Injected[...]`` fields of an existing instance.

        Returns:
            The same instance, for chaining.

        """
        self._inject_fields(instance)
        return instance

    def _build(
        self,
        cls: type[Any],
        on_built: PromotionHook | None = None,
        *,
        site: tuple[type[Any], str] | None = None,
    ) -> Any:
        instance = self._registry.get_singleton(cls)
        if instance is not MISSING:
            return instance

        concrete = self._registry.singleton_class_for(cls)
        if concrete is not None and concrete is not cls:
            instance = self._build(concrete, on_built, site=site)
            self._registry.promote_singleton(cls, instance)
            return instance

        if not self._policy.is_constructible(cls):
            raise NoAccessibleConstructorError(cls, self._policy.describe_rejection(cls))

        if closes_cycle(cls):
            owner, name = site if site is not None else (current_stack()[-1], "")
            raise CircularDependencyError(owner, name, cls, current_stack())

        is_singleton = self._inspector.is_singleton_marker(cls) or (
            self._registry.is_deferred_singleton(cls)
        )

        with building(cls) as frame:
            if is_singleton and self._lock_mode is LockMode.THREAD:
                with self._get_singleton_lock(cls):
                    # Double-check: another thread may have promoted it meanwhile.
                    existing = self._registry.get_singleton(cls)
                    if existing is not MISSING:
                        return existing
                    instance, undos = self._construct(cls, is_singleton, on_built)
            else:
                instance, undos = self._construct(cls, is_singleton, on_built)

            frame.promoted = is_singleton or on_built is not None
            frame.wiring = True
            try:
                self._inject_fields(instance)
            except Exception:
                for undo in reversed(undos):
                    undo()
                raise

        return instance

    def _construct(
        self,
        cls: type[Any],
        is_singleton: bool,
        on_built: PromotionHook | None,
    ) -> tuple[Any, list[Undo]]:
        constructor = self._select_constructor(cls)

        values: dict[str, Any] = {}
        for parameter in constructor.parameters:
            value = self._resolve_dependency(
                owner=cls,
                name=parameter.name,
                declared_type=parameter.declared_type,
                markers=parameter.markers,
                has_default=parameter.has_default,
            )
            if value is not _USE_DEFAULT:
                values[parameter.name] = value

        try:
            instance = constructor.invoke(values)
        except Exception as exc:
            raise ConstructionError(cls) from exc

        undos: list[Undo] = []
        if is_singleton:
            self._registry.promote_singleton(cls, instance)
            undos.append(partial(self._registry.discard_singleton, cls, instance))
        if on_built is not None:
            undos.append(on_built(instance))
        return instance, undos

    def _select_constructor(self, cls: type[Any]) -> ConstructorDescriptor:
        candidates = [
            constructor
            for constructor in self._inspector.list_constructors(cls)
            if constructor.is_eligible and constructor.accessible
        ]
        if len(candidates) > 1:
            raise AmbiguousConstructorError(cls, (c.name for c in candidates))
        if not candidates:
            raise NoAccessibleConstructorError(cls)
        logger.debug("Selected constructor %s.%s", cls.__qualname__, candidates[0].name)
        return candidates[0]

    def _inject_fields(self, instance: Any) -> None:
        owner = type(instance)
        for field in self._inspector.list_injectable_fields(owner):
            if not field.accessible:
                logger.debug("Skipping read-only field %s.%s", owner.__qualname__, field.name)
                continue
            if field.unresolved_annotation is not None:
                reason = (
                    f"Annotation {field.unresolved_annotation!r} cannot be evaluated; "
                    "define the types it names at module level."
                )
                raise MissingDependencyError(owner, field.name, None, reason=reason)
            value = self._resolve_dependency(
                owner=owner,
                name=field.name,
                declared_type=field.declared_type,
                markers=field.markers,
                has_default=False,
            )
            try:
                setattr(instance, field.name, value)
            except Exception as exc:
                msg = f"Failed to set field '{field.name}' of '{owner.__qualname__}'."
                raise ConstructionError(owner, msg) from exc

    def _resolve_dependency(
        self,
        *,
        owner: type[Any],
        name: str,
        declared_type: Any,
        markers: Iterable[object],
        has_default: bool,
    ) -> Any:
        if declared_type is None:
            if has_default:
                return _USE_DEFAULT
            raise MissingDependencyError(owner, name, None, reason="Add a type annotation.")

        value = self._matcher.match(owner, declared_type, markers, name=name)
        if value is MISSING:
            try:
                value = self._build(declared_type, site=(owner, name))
            except NoAccessibleConstructorError as exc:
                if has_default:
                    return _USE_DEFAULT
                raise MissingDependencyError(owner, name, declared_type, reason=str(exc)) from exc

        if value is None:
            raise MissingDependencyError(owner, name, declared_type, reason="It resolved to None.")
        return value

    def _get_singleton_lock(self, key: type[Any]) -> threading.RLock:
        """Get or create a construction lock for the singleton class ``key``.

        Uses double-checked locking to minimize lock contention.
        """
        if key not in self._singleton_locks:
            with self._singleton_locks_lock:
                # Second check after acquiring lock - race timing dependent
                if key not in self._singleton_locks:  # pragma: no cover - race timing dependent
                    self._singleton_locks[key] = threading.RLock()
        return self._singleton_locks[key]
