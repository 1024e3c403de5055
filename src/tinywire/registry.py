from __future__ import annotations

import logging
import threading
from typing import Any

from tinywire.exceptions import DuplicateBindingError, InvalidQualifierError
from tinywire.inspector import MetadataInspector

logger = logging.getLogger(__name__)

MISSING: Any = object()
"""Returned by lookups when no entry exists; ``None`` is a valid stored instance."""


class Registry:
    """Hold explicit and lazily promoted bindings of a container.

    Four stores are kept:

    - singletons: ``type -> instance``
    - qualified instances: ``type -> {qualifier -> instance}``
    - deferred singleton classes: ``requested type -> concrete type``
    - deferred qualified classes: ``type -> {qualifier -> concrete type}``

    Every mutation happens under one re-entrant lock, so an entry is either
    fully inserted or absent for every observer. Explicit registrations reject
    collisions; lazy promotions done by the resolver do not.
    """

    def __init__(self, inspector: MetadataInspector) -> None:
        self._inspector = inspector
        self._lock = threading.RLock()
        self._singletons: dict[type[Any], Any] = {}
        self._qualifieds: dict[type[Any], dict[object, Any]] = {}
        self._singleton_classes: dict[type[Any], type[Any]] = {}
        self._singleton_concretes: set[type[Any]] = set()
        self._qualified_classes: dict[type[Any], dict[object, type[Any]]] = {}

    def register_singleton(self, key: type[Any], instance: Any) -> None:
        """Store a pre-built singleton instance for ``key``.

        Raises:
            DuplicateBindingError: If an instance is already stored for ``key``.

        """
        with self._lock:
            if key in self._singletons:
                raise DuplicateBindingError(key)
            self._singletons[key] = instance
        logger.debug("Registered singleton instance for %r", key)

    def register_qualified_instance(self, key: type[Any], marker: object, instance: Any) -> None:
        """Store a pre-built instance for ``key`` under the qualifier ``marker``.

        Raises:
            InvalidQualifierError: If ``marker`` is not a qualifier.
            DuplicateBindingError: If ``(key, marker)`` is already bound.

        """
        self._validate_qualifier(marker)
        with self._lock:
            bucket = self._qualifieds.setdefault(key, {})
            if marker in bucket:
                raise DuplicateBindingError(key, marker, kind="qualified instance")
            bucket[marker] = instance
        logger.debug("Registered qualified instance for %r with %r", key, marker)

    def register_singleton_class(self, requested: type[Any], concrete: type[Any]) -> None:
        """Bind ``requested`` to ``concrete`` and treat ``concrete`` as a singleton.

        Raises:
            DuplicateBindingError: If ``requested`` is already bound.

        """
        with self._lock:
            if requested in self._singleton_classes:
                raise DuplicateBindingError(requested, kind="singleton class")
            self._singleton_classes[requested] = concrete
            self._singleton_concretes.add(concrete)
        logger.debug("Registered singleton class %r for %r", concrete, requested)

    def register_qualified_class(
        self,
        requested: type[Any],
        marker: object,
        concrete: type[Any],
    ) -> None:
        """Bind ``(requested, marker)`` to ``concrete``, built lazily on first use.

        Raises:
            InvalidQualifierError: If ``marker`` is not a qualifier.
            DuplicateBindingError: If ``(requested, marker)`` is already bound.

        """
        self._validate_qualifier(marker)
        with self._lock:
            bucket = self._qualified_classes.setdefault(requested, {})
            if marker in bucket:
                raise DuplicateBindingError(requested, marker, kind="qualified class")
            bucket[marker] = concrete
        logger.debug("Registered qualified class %r for %r with %r", concrete, requested, marker)

    def get_singleton(self, key: type[Any]) -> Any:
        """Return the singleton stored for ``key`` or ``MISSING``."""
        return self._singletons.get(key, MISSING)

    def singleton_class_for(self, requested: type[Any]) -> type[Any] | None:
        """Return the concrete class bound to ``requested`` as a singleton."""
        return self._singleton_classes.get(requested)

    def is_deferred_singleton(self, concrete: type[Any]) -> bool:
        """Return whether ``concrete`` was bound with ``register_singleton_class``."""
        return concrete in self._singleton_concretes

    def qualified_instances_for(self, key: type[Any]) -> dict[object, Any]:
        """Return a snapshot of qualified instances stored for ``key``."""
        with self._lock:
            return dict(self._qualifieds.get(key, {}))

    def qualified_classes_for(self, key: type[Any]) -> dict[object, type[Any]]:
        """Return a snapshot of deferred qualified classes bound for ``key``."""
        with self._lock:
            return dict(self._qualified_classes.get(key, {}))

    def promote_singleton(self, key: type[Any], instance: Any) -> None:
        """Store a freshly built singleton; a concurrent promotion is overwritten."""
        with self._lock:
            self._singletons[key] = instance
        logger.debug("Promoted %r to singleton", key)

    def discard_singleton(self, key: type[Any], instance: Any) -> None:
        """Undo ``promote_singleton`` if ``instance`` is still the stored one."""
        with self._lock:
            if self._singletons.get(key, MISSING) is instance:
                del self._singletons[key]

    def promote_qualified(self, key: type[Any], marker: object, instance: Any) -> Any:
        """Store a freshly built qualified instance unless one is already stored.

        Returns:
            The instance stored under ``(key, marker)`` after the call.

        """
        with self._lock:
            stored = self._qualifieds.setdefault(key, {}).setdefault(marker, instance)
        if stored is instance:
            logger.debug("Promoted %r to qualified instance of %r with %r", instance, key, marker)
        return stored

    def discard_qualified(self, key: type[Any], marker: object, instance: Any) -> None:
        """Undo ``promote_qualified`` if ``instance`` is still the stored one."""
        with self._lock:
            bucket = self._qualifieds.get(key)
            if bucket is not None and bucket.get(marker, MISSING) is instance:
                del bucket[marker]

    def _validate_qualifier(self, marker: object) -> None:
        if not self._inspector.is_qualifier_marker(type(marker)):
            raise InvalidQualifierError(marker)
