from __future__ import annotations

import inspect
import logging
from collections.abc import Callable
from dataclasses import dataclass
from inspect import Parameter
from typing import Annotated, Any, get_args, get_origin, get_type_hints

from tinywire._internal.integrations.pydantic_settings import is_pydantic_settings_subclass
from tinywire.markers import (
    CLASS_QUALIFIERS_ATTR,
    INJECT_ATTR,
    LIFETIME_ATTR,
    QUALIFIER_KIND_ATTR,
    Lifetime,
    is_injected_annotation,
    is_qualifier,
)

logger = logging.getLogger(__name__)

_RECEIVER_KINDS = (Parameter.POSITIONAL_ONLY, Parameter.POSITIONAL_OR_KEYWORD)
_DEFAULT_CONSTRUCTOR_NAME = "__init__"
_INJECTED_NAME = "Injected"


@dataclass(frozen=True, slots=True)
class ParameterDescriptor:
    """A constructor parameter as seen by the resolver."""

    name: str
    declared_type: Any
    """Parameter type with ``Annotated`` metadata stripped; ``None`` when not annotated."""
    markers: frozenset[object]
    """Qualifier markers found in the parameter annotation."""
    kind: Any
    has_default: bool


@dataclass(frozen=True, slots=True)
class ConstructorDescriptor:
    """A way to instantiate a class: ``__init__`` or an alternate classmethod."""

    owner: type[Any]
    name: str
    factory: Callable[..., Any]
    parameters: tuple[ParameterDescriptor, ...]
    injectable: bool
    """Whether the constructor is explicitly marked with ``@inject``."""
    accessible: bool
    accepts_no_arguments: bool

    @property
    def is_eligible(self) -> bool:
        """Return whether the constructor may be chosen for injection."""
        return self.injectable or self.accepts_no_arguments

    def invoke(self, values: dict[str, Any]) -> Any:
        """Call the constructor with resolved values keyed by parameter name."""
        args: list[Any] = []
        kwargs: dict[str, Any] = {}
        for parameter in self.parameters:
            if parameter.name not in values:
                continue
            if parameter.kind is Parameter.POSITIONAL_ONLY:
                args.append(values[parameter.name])
            else:
                kwargs[parameter.name] = values[parameter.name]
        return self.factory(*args, **kwargs)


@dataclass(frozen=True, slots=True)
class FieldDescriptor:
    """A class attribute eligible for injection after construction."""

    owner: type[Any]
    name: str
    declared_type: Any
    markers: frozenset[object]
    accessible: bool
    unresolved_annotation: str | None = None
    """Source text of an annotation that could not be evaluated; the field cannot be injected."""


class MetadataInspector:
    """Read constructors, injectable fields and markers from classes at runtime.

    Results are cached per class. Class-level markers (``@singleton``,
    ``@qualified``, ``@qualifier``) are read from the class itself and are not
    inherited, while injectable fields include annotations declared on base
    classes.
    """

    def __init__(self) -> None:
        self._constructors_cache: dict[type[Any], tuple[ConstructorDescriptor, ...]] = {}
        self._fields_cache: dict[type[Any], tuple[FieldDescriptor, ...]] = {}

    def list_constructors(self, cls: type[Any]) -> tuple[ConstructorDescriptor, ...]:
        """Return ``__init__`` followed by every ``@inject`` classmethod of ``cls``."""
        cached = self._constructors_cache.get(cls)
        if cached is not None:
            return cached

        constructors = [self._describe_init(cls)]
        for name, attribute in vars(cls).items():
            if not isinstance(attribute, classmethod):
                continue
            if not getattr(attribute.__func__, INJECT_ATTR, False):
                continue
            factory = getattr(cls, name)
            parameters = self._describe_parameters(
                callable_=factory,
                hints_source=attribute.__func__,
                skip_first_parameter=False,
            )
            constructors.append(
                ConstructorDescriptor(
                    owner=cls,
                    name=name,
                    factory=factory,
                    parameters=parameters,
                    injectable=True,
                    accessible=not name.startswith("_"),
                    accepts_no_arguments=self._accepts_no_arguments(factory, skip_first=False),
                ),
            )

        result = tuple(constructors)
        self._constructors_cache[cls] = result
        return result

    def list_injectable_fields(self, cls: type[Any]) -> tuple[FieldDescriptor, ...]:
        """Return every ``Injected[...]`` class attribute of ``cls`` and its bases."""
        cached = self._fields_cache.get(cls)
        if cached is not None:
            return cached

        fields: list[FieldDescriptor] = []
        for name, annotation in self._class_type_hints(cls).items():
            if isinstance(annotation, str):
                fields.append(
                    FieldDescriptor(
                        owner=cls,
                        name=name,
                        declared_type=None,
                        markers=frozenset(),
                        accessible=self._is_assignable(cls, name),
                        unresolved_annotation=annotation,
                    ),
                )
            elif is_injected_annotation(annotation):
                fields.append(
                    FieldDescriptor(
                        owner=cls,
                        name=name,
                        declared_type=self.unwrap_annotated(annotation),
                        markers=self.markers_on(annotation),
                        accessible=self._is_assignable(cls, name),
                    ),
                )
        result = tuple(fields)
        self._fields_cache[cls] = result
        return result

    def is_qualifier_marker(self, marker_type: type[Any]) -> bool:
        """Return whether ``marker_type`` is tagged with ``@qualifier``."""
        return isinstance(marker_type, type) and vars(marker_type).get(QUALIFIER_KIND_ATTR) is True

    def is_singleton_marker(self, cls: type[Any]) -> bool:
        """Return whether ``cls`` is marked ``@singleton`` or is a settings model."""
        if vars(cls).get(LIFETIME_ATTR) is Lifetime.SINGLETON:
            return True
        return is_pydantic_settings_subclass(cls)

    def markers_on(self, annotation: Any) -> frozenset[object]:
        """Return the qualifier markers carried by an ``Annotated`` annotation."""
        if get_origin(annotation) is not Annotated:
            return frozenset()
        return frozenset(item for item in get_args(annotation)[1:] if is_qualifier(item))

    def qualifiers_on_class(self, cls: type[Any]) -> tuple[object, ...]:
        """Return qualifier markers attached to ``cls`` with ``@qualified``."""
        return tuple(vars(cls).get(CLASS_QUALIFIERS_ATTR, ()))

    def unwrap_annotated(self, annotation: Any) -> Any:
        """Recursively unwrap Annotated[T, ...] into T."""
        if get_origin(annotation) is not Annotated:
            return annotation
        return self.unwrap_annotated(get_args(annotation)[0])

    def _describe_init(self, cls: type[Any]) -> ConstructorDescriptor:
        init = cls.__init__
        if init is object.__init__:
            return ConstructorDescriptor(
                owner=cls,
                name=_DEFAULT_CONSTRUCTOR_NAME,
                factory=cls,
                parameters=(),
                injectable=vars(cls).get(INJECT_ATTR, False) is True,
                accessible=True,
                accepts_no_arguments=True,
            )

        return ConstructorDescriptor(
            owner=cls,
            name=_DEFAULT_CONSTRUCTOR_NAME,
            factory=cls,
            parameters=self._describe_parameters(
                callable_=init,
                hints_source=init,
                skip_first_parameter=True,
            ),
            injectable=(
                getattr(init, INJECT_ATTR, False) is True
                or vars(cls).get(INJECT_ATTR, False) is True
            ),
            accessible=True,
            accepts_no_arguments=self._accepts_no_arguments(init, skip_first=True),
        )

    def _describe_parameters(
        self,
        *,
        callable_: Callable[..., Any],
        hints_source: Callable[..., Any],
        skip_first_parameter: bool,
    ) -> tuple[ParameterDescriptor, ...]:
        hints = self._resolved_type_hints(hints_source)
        descriptors: list[ParameterDescriptor] = []
        for parameter in self._parameters(callable_, skip_first=skip_first_parameter):
            if parameter.kind in (Parameter.VAR_POSITIONAL, Parameter.VAR_KEYWORD):
                continue
            annotation = hints.get(parameter.name, parameter.annotation)
            if annotation is Parameter.empty or isinstance(annotation, str):
                annotation = None
            descriptors.append(
                ParameterDescriptor(
                    name=parameter.name,
                    declared_type=self.unwrap_annotated(annotation),
                    markers=self.markers_on(annotation),
                    kind=parameter.kind,
                    has_default=parameter.default is not Parameter.empty,
                ),
            )
        return tuple(descriptors)

    def _accepts_no_arguments(self, callable_: Callable[..., Any], *, skip_first: bool) -> bool:
        return not any(
            self._is_required_parameter(parameter)
            for parameter in self._parameters(callable_, skip_first=skip_first)
        )

    def _parameters(
        self,
        callable_: Callable[..., Any],
        *,
        skip_first: bool,
    ) -> tuple[Parameter, ...]:
        try:
            parameters = tuple(inspect.signature(callable_).parameters.values())
        except (TypeError, ValueError):
            logger.debug("Cannot read signature of %r; treating it as parameterless", callable_)
            return ()
        if skip_first and parameters and parameters[0].kind in _RECEIVER_KINDS:
            # The receiver of an unbound __init__ may use any name.
            return parameters[1:]
        return parameters

    def _resolved_type_hints(self, source: Callable[..., Any]) -> dict[str, Any]:
        try:
            return get_type_hints(source, include_extras=True)
        except (AttributeError, NameError, TypeError) as error:
            logger.debug("Cannot resolve type hints of %r: %s", source, error)
            return {}

    def _class_type_hints(self, cls: type[Any]) -> dict[str, Any]:
        try:
            return get_type_hints(cls, include_extras=True)
        except (AttributeError, NameError, TypeError) as error:
            logger.debug("Cannot resolve class annotations of %r: %s", cls, error)
        # Fall back to already evaluated annotations, base classes first. String
        # annotations naming Injected are kept so the field is reported, not skipped.
        hints: dict[str, Any] = {}
        for klass in reversed(cls.__mro__):
            for name, annotation in vars(klass).get("__annotations__", {}).items():
                if not isinstance(annotation, str) or _INJECTED_NAME in annotation:
                    hints[name] = annotation
        return hints

    def _is_assignable(self, cls: type[Any], name: str) -> bool:
        attribute = inspect.getattr_static(cls, name, None)
        if isinstance(attribute, property):
            return attribute.fset is not None
        return True

    def _is_required_parameter(self, parameter: Parameter) -> bool:
        return (
            parameter.default is Parameter.empty
            and parameter.kind is not Parameter.VAR_POSITIONAL
            and parameter.kind is not Parameter.VAR_KEYWORD
        )
