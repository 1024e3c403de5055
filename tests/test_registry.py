import pytest

from tinywire.exceptions import DuplicateBindingError, InvalidQualifierError
from tinywire.inspector import MetadataInspector
from tinywire.markers import Named
from tinywire.registry import MISSING, Registry


class ServiceA:
    pass


class ServiceB(ServiceA):
    pass


@pytest.fixture()
def registry(inspector: MetadataInspector) -> Registry:
    return Registry(inspector)


def test_register_singleton_rejects_duplicate_and_keeps_first(registry: Registry) -> None:
    first = ServiceA()
    registry.register_singleton(ServiceA, first)

    with pytest.raises(DuplicateBindingError) as exc_info:
        registry.register_singleton(ServiceA, ServiceA())

    assert exc_info.value.key is ServiceA
    assert registry.get_singleton(ServiceA) is first


def test_get_singleton_returns_missing_sentinel(registry: Registry) -> None:
    assert registry.get_singleton(ServiceA) is MISSING


def test_none_is_a_valid_singleton(registry: Registry) -> None:
    registry.register_singleton(ServiceA, None)

    assert registry.get_singleton(ServiceA) is None


def test_register_qualified_instance_rejects_duplicate(registry: Registry) -> None:
    first = ServiceA()
    registry.register_qualified_instance(ServiceA, Named("a"), first)

    with pytest.raises(DuplicateBindingError) as exc_info:
        registry.register_qualified_instance(ServiceA, Named("a"), ServiceA())

    assert exc_info.value.qualifier == Named("a")
    assert registry.qualified_instances_for(ServiceA) == {Named("a"): first}


def test_same_qualifier_for_different_types_is_allowed(registry: Registry) -> None:
    registry.register_qualified_instance(ServiceA, Named("a"), ServiceA())
    registry.register_qualified_instance(ServiceB, Named("a"), ServiceB())

    assert len(registry.qualified_instances_for(ServiceA)) == 1
    assert len(registry.qualified_instances_for(ServiceB)) == 1


@pytest.mark.parametrize("marker", ["a", 1, object(), None])
def test_register_qualified_instance_rejects_non_qualifier(
    registry: Registry,
    marker: object,
) -> None:
    with pytest.raises(InvalidQualifierError) as exc_info:
        registry.register_qualified_instance(ServiceA, marker, ServiceA())

    assert exc_info.value.marker is marker
    assert registry.qualified_instances_for(ServiceA) == {}


def test_register_qualified_class_rejects_non_qualifier(registry: Registry) -> None:
    with pytest.raises(InvalidQualifierError):
        registry.register_qualified_class(ServiceA, "a", ServiceB)


def test_register_singleton_class_rejects_duplicate(registry: Registry) -> None:
    registry.register_singleton_class(ServiceA, ServiceB)

    with pytest.raises(DuplicateBindingError):
        registry.register_singleton_class(ServiceA, ServiceA)

    assert registry.singleton_class_for(ServiceA) is ServiceB


def test_bound_concrete_is_deferred_singleton(registry: Registry) -> None:
    registry.register_singleton_class(ServiceA, ServiceB)

    assert registry.is_deferred_singleton(ServiceB) is True
    assert registry.is_deferred_singleton(ServiceA) is False


def test_lookups_return_snapshots(registry: Registry) -> None:
    registry.register_qualified_class(ServiceA, Named("a"), ServiceB)

    snapshot = registry.qualified_classes_for(ServiceA)
    snapshot.clear()

    assert registry.qualified_classes_for(ServiceA) == {Named("a"): ServiceB}


def test_promote_singleton_is_last_write_wins(registry: Registry) -> None:
    first = ServiceA()
    second = ServiceA()

    registry.promote_singleton(ServiceA, first)
    registry.promote_singleton(ServiceA, second)

    assert registry.get_singleton(ServiceA) is second


def test_discard_singleton_only_removes_same_instance(registry: Registry) -> None:
    stored = ServiceA()
    registry.promote_singleton(ServiceA, stored)

    registry.discard_singleton(ServiceA, ServiceA())
    assert registry.get_singleton(ServiceA) is stored

    registry.discard_singleton(ServiceA, stored)
    assert registry.get_singleton(ServiceA) is MISSING


def test_promote_qualified_keeps_first_instance(registry: Registry) -> None:
    first = ServiceA()

    assert registry.promote_qualified(ServiceA, Named("a"), first) is first
    assert registry.promote_qualified(ServiceA, Named("a"), ServiceA()) is first


def test_discard_qualified_only_removes_same_instance(registry: Registry) -> None:
    stored = ServiceA()
    registry.promote_qualified(ServiceA, Named("a"), stored)

    registry.discard_qualified(ServiceA, Named("a"), ServiceA())
    assert registry.qualified_instances_for(ServiceA) == {Named("a"): stored}

    registry.discard_qualified(ServiceA, Named("a"), stored)
    assert registry.qualified_instances_for(ServiceA) == {}
