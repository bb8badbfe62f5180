import pytest

from smarthpa.client import (
    HorizontalPodAutoscaler,
    InMemoryClient,
    NamespacedName,
    NotFoundError,
)
from smarthpa.types import (
    CONDITION_TRUE,
    Condition,
    HPAObjectReference,
    ObjectMeta,
    SmartHorizontalPodAutoscaler,
    SmartHorizontalPodAutoscalerSpec,
)

KEY = NamespacedName(namespace="default", name="test-hpa")


def _hpa():
    return HorizontalPodAutoscaler(
        metadata=ObjectMeta(name="test-hpa", namespace="default"),
        min_replicas=1,
        max_replicas=5,
        scale_target_ref={"kind": "Deployment", "name": "test-app", "apiVersion": "apps/v1"},
    )


def _smart_hpa():
    return SmartHorizontalPodAutoscaler(
        metadata=ObjectMeta(name="test-hpa", namespace="default"),
        spec=SmartHorizontalPodAutoscalerSpec(
            hpa_object_ref=HPAObjectReference(name="test-hpa", namespace="default")
        ),
    )


def test_namespaced_name_str():
    assert str(KEY) == "default/test-hpa"


def test_create_then_get_round_trip():
    client = InMemoryClient()
    client.create(_hpa())
    assert client.get(KEY, HorizontalPodAutoscaler) == _hpa()


def test_initial_objects_are_stored():
    client = InMemoryClient([_hpa()])
    assert client.get(KEY, HorizontalPodAutoscaler).max_replicas == _hpa().max_replicas


def test_get_returns_independent_copy():
    client = InMemoryClient([_hpa()])
    fetched = client.get(KEY, HorizontalPodAutoscaler)
    fetched.max_replicas = 99
    assert client.get(KEY, HorizontalPodAutoscaler).max_replicas == _hpa().max_replicas


def test_get_missing_raises_not_found():
    client = InMemoryClient()
    with pytest.raises(NotFoundError) as info:
        client.get(KEY, HorizontalPodAutoscaler)
    assert info.value.key == KEY


def test_create_duplicate_raises():
    client = InMemoryClient([_hpa()])
    with pytest.raises(ValueError):
        client.create(_hpa())


def test_kinds_are_kept_apart():
    client = InMemoryClient([_hpa(), _smart_hpa()])
    assert client.get(KEY, SmartHorizontalPodAutoscaler) == _smart_hpa()
    assert client.get(KEY, HorizontalPodAutoscaler) == _hpa()


def test_update_replaces_object():
    client = InMemoryClient([_hpa()])
    changed = client.get(KEY, HorizontalPodAutoscaler)
    changed.min_replicas = 2
    changed.desired_replicas = 3
    client.update(changed)
    assert client.get(KEY, HorizontalPodAutoscaler) == changed


def test_update_missing_raises_not_found():
    client = InMemoryClient()
    with pytest.raises(NotFoundError):
        client.update(_hpa())


def test_update_status_keeps_spec():
    client = InMemoryClient([_smart_hpa()])
    obj = client.get(KEY, SmartHorizontalPodAutoscaler)
    obj.status.conditions = [Condition(type="Ready", status=CONDITION_TRUE)]
    obj.spec.hpa_object_ref.name = "other"
    client.update_status(obj)

    stored = client.get(KEY, SmartHorizontalPodAutoscaler)
    assert stored.status.conditions == obj.status.conditions
    assert stored.spec == _smart_hpa().spec


def test_update_status_without_status_raises():
    client = InMemoryClient([_hpa()])
    with pytest.raises(TypeError):
        client.update_status(_hpa())


def test_delete_removes_object():
    client = InMemoryClient([_hpa()])
    client.delete(_hpa())
    with pytest.raises(NotFoundError):
        client.get(KEY, HorizontalPodAutoscaler)


def test_delete_missing_raises_not_found():
    client = InMemoryClient()
    with pytest.raises(NotFoundError):
        client.delete(_hpa())