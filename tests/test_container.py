from abc import ABC, abstractmethod
from typing import Annotated, ClassVar

import pytest

from tinywire.container import Container
from tinywire.exceptions import (
    AmbiguousConstructorError,
    CircularDependencyError,
    ConstructionError,
    MissingDependencyError,
    NoAccessibleConstructorError,
)
from tinywire.markers import Injected, Named, inject, singleton
from tinywire.registry import MISSING


class Settings:
    def __init__(self) -> None:
        self.url = "sqlite://"


class Client:
    def __init__(self, url: str) -> None:
        self.url = url

    @inject
    @classmethod
    def from_settings(cls, settings: Settings) -> "Client":
        return cls(settings.url)


class PrivateFactoryClient:
    def __init__(self, url: str) -> None:
        self.url = url

    @inject
    @classmethod
    def _from_settings(cls, settings: Settings) -> "PrivateFactoryClient":
        return cls(settings.url)


@singleton
class SingletonLeft:
    right: "Injected[SingletonRight]"


@singleton
class SingletonRight:
    left: "Injected[SingletonLeft]"


class TransientLeft:
    right: "Injected[TransientRight]"


class TransientRight:
    left: "Injected[TransientLeft]"


@singleton
class Parent:
    child: "Injected[Child]"


class Child:
    parent: Injected[Parent]


@singleton
class Owner:
    @inject
    def __init__(self, helper: "Helper") -> None:
        self.helper = helper


class Helper:
    owner: "Injected[Owner]"


@singleton
class ConstructorLeft:
    @inject
    def __init__(self, right: "ConstructorRight") -> None:
        self.right = right


@singleton
class ConstructorRight:
    @inject
    def __init__(self, left: ConstructorLeft) -> None:
        self.left = left


class TestLifetimes:
    def test_transient_class_is_built_on_every_resolve(self, container: Container) -> None:
        class ServiceA:
            pass

        first = container.resolve(ServiceA)
        second = container.resolve(ServiceA)

        assert isinstance(first, ServiceA)
        assert first is not second

    def test_singleton_class_is_built_once(self, container: Container) -> None:
        @singleton
        class ServiceA:
            pass

        assert container.resolve(ServiceA) is container.resolve(ServiceA)

    def test_singleton_is_stored_after_resolve(self, container: Container) -> None:
        @singleton
        class ServiceA:
            pass

        instance = container.resolve(ServiceA)

        assert container.registry.get_singleton(ServiceA) is instance

    def test_singleton_marker_is_not_inherited(self, container: Container) -> None:
        @singleton
        class Base:
            pass

        class Derived(Base):
            pass

        assert container.resolve(Derived) is not container.resolve(Derived)

    def test_registered_singleton_instance_is_returned(self, container: Container) -> None:
        class ServiceA:
            pass

        instance = ServiceA()
        container.register_singleton(ServiceA, instance)

        assert container.resolve(ServiceA) is instance

    def test_container_resolves_itself(self, container: Container) -> None:
        assert container.resolve(Container) is container

    def test_classes_may_depend_on_container(self, container: Container) -> None:
        class UsesContainer:
            @inject
            def __init__(self, container: Container) -> None:
                self.container = container

        assert container.resolve(UsesContainer).container is container

    def test_registration_methods_chain(self, container: Container) -> None:
        class ServiceA:
            pass

        class ServiceB:
            pass

        result = container.register_singleton(ServiceA, ServiceA()).register_singleton_class(
            ServiceB,
        )

        assert result is container


class TestConstructorInjection:
    def test_inject_init_parameters_are_resolved(self, container: Container) -> None:
        class ServiceA:
            pass

        @singleton
        class ServiceB:
            pass

        class ServiceC:
            @inject
            def __init__(self, a: ServiceA, b: ServiceB) -> None:
                self.a = a
                self.b = b

        instance = container.resolve(ServiceC)

        assert isinstance(instance.a, ServiceA)
        assert instance.b is container.resolve(ServiceB)

    def test_unmarked_zero_argument_init_is_eligible(self, container: Container) -> None:
        class ServiceA:
            def __init__(self) -> None:
                self.ready = True

        assert container.resolve(ServiceA).ready is True

    def test_unmarked_init_with_defaults_keeps_defaults(self, container: Container) -> None:
        class ServiceA:
            def __init__(self, retries: int = 3) -> None:
                self.retries = retries

        assert container.resolve(ServiceA).retries == 3

    def test_unresolvable_parameter_with_default_keeps_default(
        self,
        container: Container,
    ) -> None:
        class ServiceA:
            pass

        class ServiceB:
            @inject
            def __init__(self, a: ServiceA, name: str = "b") -> None:
                self.a = a
                self.name = name

        instance = container.resolve(ServiceB)

        assert isinstance(instance.a, ServiceA)
        assert instance.name == "b"

    def test_alternate_classmethod_constructor_is_used(self, container: Container) -> None:
        client = container.resolve(Client)

        assert isinstance(client, Client)
        assert client.url == "sqlite://"

    def test_private_classmethod_constructor_is_ignored(self, container: Container) -> None:
        with pytest.raises(NoAccessibleConstructorError) as exc_info:
            container.resolve(PrivateFactoryClient)

        assert exc_info.value.key is PrivateFactoryClient

    def test_several_eligible_constructors_are_ambiguous(self, container: Container) -> None:
        @singleton
        class ServiceA:
            @inject
            def __init__(self) -> None:
                pass

            @inject
            @classmethod
            def create(cls) -> object:
                return cls()

        with pytest.raises(AmbiguousConstructorError) as exc_info:
            container.resolve(ServiceA)

        assert exc_info.value.candidates == ("__init__", "create")
        assert container.registry.get_singleton(ServiceA) is MISSING

    def test_no_eligible_constructor(self, container: Container) -> None:
        class ServiceA:
            def __init__(self, url: str) -> None:
                self.url = url

        with pytest.raises(NoAccessibleConstructorError) as exc_info:
            container.resolve(ServiceA)

        assert exc_info.value.key is ServiceA

    def test_abstract_class_cannot_be_resolved(self, container: Container) -> None:
        class Port(ABC):
            @abstractmethod
            def send(self) -> None: ...

        with pytest.raises(NoAccessibleConstructorError):
            container.resolve(Port)

    def test_constructor_failure_is_wrapped(self, container: Container) -> None:
        class ServiceA:
            def __init__(self) -> None:
                msg = "boom"
                raise RuntimeError(msg)

        with pytest.raises(ConstructionError) as exc_info:
            container.resolve(ServiceA)

        assert exc_info.value.key is ServiceA
        assert isinstance(exc_info.value.__cause__, RuntimeError)

    def test_builtin_parameter_is_missing_dependency(self, container: Container) -> None:
        class ServiceA:
            @inject
            def __init__(self, port: int) -> None:
                self.port = port

        with pytest.raises(MissingDependencyError) as exc_info:
            container.resolve(ServiceA)

        assert exc_info.value.owner is ServiceA
        assert exc_info.value.name == "port"
        assert exc_info.value.key is int
        assert isinstance(exc_info.value.__cause__, NoAccessibleConstructorError)

    def test_unannotated_parameter_is_missing_dependency(self, container: Container) -> None:
        class ServiceA:
            @inject
            def __init__(self, dependency) -> None:  # type: ignore[no-untyped-def]
                self.dependency = dependency

        with pytest.raises(MissingDependencyError) as exc_info:
            container.resolve(ServiceA)

        assert exc_info.value.name == "dependency"
        assert exc_info.value.key is None

    def test_dependency_resolving_to_none_is_missing(self, container: Container) -> None:
        class ServiceA:
            pass

        class ServiceB:
            @inject
            def __init__(self, a: ServiceA) -> None:
                self.a = a

        container.register_singleton(ServiceA, None)

        with pytest.raises(MissingDependencyError, match="resolved to None"):
            container.resolve(ServiceB)

    def test_constructor_cycle_is_reported(self, container: Container) -> None:
        with pytest.raises(CircularDependencyError) as exc_info:
            container.resolve(ConstructorLeft)

        error = exc_info.value
        assert error.owner is ConstructorRight
        assert error.name == "left"
        assert error.key is ConstructorLeft
        assert error.stack == (ConstructorLeft, ConstructorRight)
        assert "ConstructorLeft -> ConstructorRight -> ConstructorLeft" in str(error)
        assert container.registry.get_singleton(ConstructorLeft) is MISSING


class TestFieldInjection:
    def test_injected_fields_are_assigned(self, container: Container) -> None:
        class ServiceA:
            pass

        class ServiceB:
            a: Injected[ServiceA]

        instance = container.resolve(ServiceB)

        assert isinstance(instance.a, ServiceA)

    def test_plain_annotations_are_not_injected(self, container: Container) -> None:
        class ServiceA:
            pass

        class ServiceB:
            a: ServiceA
            counter: ClassVar[int] = 0

        instance = container.resolve(ServiceB)

        assert not hasattr(instance, "a")

    def test_inherited_fields_are_injected(self, container: Container) -> None:
        class ServiceA:
            pass

        class Base:
            a: Injected[ServiceA]

        class Derived(Base):
            pass

        assert isinstance(container.resolve(Derived).a, ServiceA)

    def test_read_only_property_field_is_skipped(self, container: Container) -> None:
        class ServiceA:
            pass

        class ServiceB:
            a: Injected[ServiceA]

            @property
            def a(self) -> str:
                return "computed"

        assert container.resolve(ServiceB).a == "computed"

    def test_singleton_field_cycle_terminates(self, container: Container) -> None:
        left = container.resolve(SingletonLeft)

        assert left.right.left is left
        assert container.resolve(SingletonRight) is left.right

    def test_transient_child_sees_partially_wired_singleton_parent(
        self,
        container: Container,
    ) -> None:
        parent = container.resolve(Parent)

        assert parent.child.parent is parent

    def test_transient_entry_into_singleton_field_cycle_terminates(
        self,
        container: Container,
    ) -> None:
        child = container.resolve(Child)

        parent = container.resolve(Parent)
        assert child.parent is parent
        assert parent.child is not child
        assert parent.child.parent is parent

    def test_field_back_to_constructing_singleton_is_reported(
        self,
        container: Container,
    ) -> None:
        with pytest.raises(CircularDependencyError) as exc_info:
            container.resolve(Owner)

        assert exc_info.value.owner is Helper
        assert exc_info.value.name == "owner"
        assert exc_info.value.stack == (Owner, Helper)
        assert container.registry.get_singleton(Owner) is MISSING

    def test_transient_field_cycle_is_reported(self, container: Container) -> None:
        with pytest.raises(CircularDependencyError) as exc_info:
            container.resolve(TransientLeft)

        assert exc_info.value.owner is TransientRight
        assert exc_info.value.name == "left"

    def test_failed_field_injection_rolls_back_promotion(self, container: Container) -> None:
        @singleton
        class Broken:
            port: Injected[int]

        with pytest.raises(MissingDependencyError):
            container.resolve(Broken)

        assert container.registry.get_singleton(Broken) is MISSING

    def test_failed_field_assignment_is_construction_error(self, container: Container) -> None:
        class ServiceA:
            pass

        class Frozen:
            __slots__ = ()
            a: Injected[ServiceA]

        with pytest.raises(ConstructionError) as exc_info:
            container.resolve(Frozen)

        assert isinstance(exc_info.value.__cause__, AttributeError)

    def test_inject_fields_wires_existing_instance(self, container: Container) -> None:
        class ServiceA:
            pass

        class ServiceB:
            a: Injected[ServiceA]
            named: Injected[Annotated[ServiceA, Named("unregistered")]]

        instance = ServiceB()

        assert container.inject_fields(instance) is instance
        assert isinstance(instance.a, ServiceA)
        assert isinstance(instance.named, ServiceA)


class TestSingletonClassBindings:
    def test_unmarked_class_becomes_singleton(self, container: Container) -> None:
        class ServiceA:
            pass

        container.register_singleton_class(ServiceA)

        assert container.resolve(ServiceA) is container.resolve(ServiceA)

    def test_requested_type_redirects_to_concrete(self, container: Container) -> None:
        class Base:
            pass

        class Impl(Base):
            pass

        container.register_singleton_class(Base, Impl)

        instance = container.resolve(Base)

        assert isinstance(instance, Impl)
        assert container.resolve(Impl) is instance
        assert container.registry.get_singleton(Base) is instance

    def test_explicit_singleton_takes_precedence(self, container: Container) -> None:
        class ServiceA:
            pass

        instance = ServiceA()
        container.register_singleton_class(ServiceA)
        container.register_singleton(ServiceA, instance)

        assert container.resolve(ServiceA) is instance
