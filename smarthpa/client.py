"""A small object store standing in for the cluster API."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field, replace
from typing import Any, TypeVar

from smarthpa.types import ObjectMeta

T = TypeVar("T")


@dataclass(frozen=True)
class NamespacedName:
    namespace: str = ""
    name: str = ""

    def __str__(self) -> str:
        return f"{self.namespace}/{self.name}"


@dataclass
class HorizontalPodAutoscaler:
    """The fields of an autoscaling/v2 HorizontalPodAutoscaler that this package touches."""

    metadata: ObjectMeta = field(default_factory=ObjectMeta)
    min_replicas: int | None = None
    max_replicas: int = 0
    desired_replicas: int = 0
    scale_target_ref: dict[str, str] = field(default_factory=dict)

    kind = "HorizontalPodAutoscaler"
    api_version = "autoscaling/v2"


class NotFoundError(LookupError):
    """Raised when a requested object does not exist."""

    def __init__(self, kind: str, key: NamespacedName) -> None:
        super().__init__(f'{kind} "{key}" not found')
        self.kind = kind
        self.key = key


def _key_of(obj: Any) -> NamespacedName:
    return NamespacedName(namespace=obj.metadata.namespace, name=obj.metadata.name)


class InMemoryClient:
    """Keeps objects by kind and namespaced name; reads and writes go through copies."""

    def __init__(self, objects: list[Any] | None = None) -> None:
        self._objects: dict[tuple[type, NamespacedName], Any] = {}
        for obj in objects or ():
            self.create(obj)

    def create(self, obj: Any) -> None:
        slot = (type(obj), _key_of(obj))
        if slot in self._objects:
            raise ValueError(f'{type(obj).__name__} "{slot[1]}" already exists')
        self._objects[slot] = copy.deepcopy(obj)

    def get(self, key: NamespacedName, kind: type[T]) -> T:
        try:
            return copy.deepcopy(self._objects[(kind, key)])
        except KeyError:
            raise NotFoundError(kind.__name__, key) from None

    def update(self, obj: Any) -> None:
        slot = self._existing_slot(obj)
        self._objects[slot] = copy.deepcopy(obj)

    def update_status(self, obj: Any) -> None:
        """Store only the status of ``obj`` onto the existing object."""
        if not hasattr(obj, "status"):
            raise TypeError(f"{type(obj).__name__} has no status")
        slot = self._existing_slot(obj)
        self._objects[slot] = replace(self._objects[slot], status=copy.deepcopy(obj.status))

    def delete(self, obj: Any) -> None:
        slot = self._existing_slot(obj)
        del self._objects[slot]

    def _existing_slot(self, obj: Any) -> tuple[type, NamespacedName]:
        slot = (type(obj), _key_of(obj))
        if slot not in self._objects:
            raise NotFoundError(type(obj).__name__, slot[1])
        return slot