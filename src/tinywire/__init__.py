from tinywire.container import Container
from tinywire.exceptions import (
    AmbiguousConstructorError,
    AmbiguousQualifierError,
    CircularDependencyError,
    ConstructionError,
    DuplicateBindingError,
    InvalidQualifierError,
    MissingDependencyError,
    NoAccessibleConstructorError,
    TinyWireError,
)
from tinywire.inspector import (
    ConstructorDescriptor,
    FieldDescriptor,
    MetadataInspector,
    ParameterDescriptor,
)
from tinywire.lock_mode import LockMode
from tinywire.markers import (
    Injected,
    InjectedMarker,
    Lifetime,
    Named,
    inject,
    qualified,
    qualifier,
    singleton,
)

__all__ = [
    "AmbiguousConstructorError",
    "AmbiguousQualifierError",
    "CircularDependencyError",
    "ConstructionError",
    "ConstructorDescriptor",
    "Container",
    "DuplicateBindingError",
    "FieldDescriptor",
    "Injected",
    "InjectedMarker",
    "InvalidQualifierError",
    "Lifetime",
    "LockMode",
    "MetadataInspector",
    "MissingDependencyError",
    "Named",
    "NoAccessibleConstructorError",
    "ParameterDescriptor",
    "TinyWireError",
    "inject",
    "qualified",
    "qualifier",
    "singleton",
]
