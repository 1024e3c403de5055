from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from typing import Any, Protocol

from tinywire.exceptions import AmbiguousQualifierError
from tinywire.registry import MISSING, Registry

logger = logging.getLogger(__name__)

Undo = Callable[[], None]
PromotionHook = Callable[[Any], Undo]
"""Called with a freshly built instance before its fields are wired; returns an undo callable."""


class BuildFunction(Protocol):
    def __call__(
        self,
        cls: type[Any],
        on_built: PromotionHook | None = None,
        *,
        site: tuple[type[Any], str] | None = None,
    ) -> Any: ...


class QualifierMatcher:
    """Find the single qualified binding that matches the markers at a use-site.

    Pre-built qualified instances win over deferred qualified classes. A
    deferred class is built through the container and the result is memoized
    as a qualified instance before its fields are wired, so cyclic qualified
    graphs terminate.
    """

    def __init__(self, registry: Registry, build: BuildFunction) -> None:
        self._registry = registry
        self._build = build

    def match(
        self,
        declaring_type: type[Any],
        declared_type: Any,
        markers: Iterable[object],
        *,
        name: str = "",
    ) -> Any:
        """Return the qualified instance for the use-site, or ``MISSING``.

        ``name`` is the parameter or field name of the use-site, used in errors.

        Raises:
            AmbiguousQualifierError: If the markers select more than one
                distinct instance or more than one distinct concrete class.

        """
        markers = tuple(markers)
        if not markers:
            return MISSING

        instances = self._registry.qualified_instances_for(declared_type)
        if instances:
            matched = {id(instances[m]): instances[m] for m in markers if m in instances}
            if len(matched) > 1:
                raise AmbiguousQualifierError(declared_type, declaring_type, markers)
            if matched:
                return next(iter(matched.values()))

        classes = self._registry.qualified_classes_for(declared_type)
        matched_markers = [m for m in markers if m in classes]
        if not matched_markers:
            return MISSING
        concretes = {classes[m] for m in matched_markers}
        if len(concretes) > 1:
            raise AmbiguousQualifierError(declared_type, declaring_type, markers)

        concrete = concretes.pop()
        logger.debug(
            "Building %r for %r qualified by %r in %r",
            concrete,
            declared_type,
            matched_markers,
            declaring_type,
        )
        instance = self._build(
            concrete,
            self._promotion_hook(declared_type, matched_markers),
            site=(declaring_type, name),
        )
        # A singleton served from the cache skips the hook; memoize it here.
        stored = instance
        for marker in matched_markers:
            stored = self._registry.promote_qualified(declared_type, marker, instance)
        return stored

    def _promotion_hook(self, declared_type: Any, markers: list[object]) -> PromotionHook:
        def promote(instance: Any) -> Undo:
            inserted = [
                marker
                for marker in markers
                if self._registry.promote_qualified(declared_type, marker, instance) is instance
            ]

            def undo() -> None:
                for marker in inserted:
                    self._registry.discard_qualified(declared_type, marker, instance)

            return undo

        return promote
