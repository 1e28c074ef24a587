"""
In-memory resource store.

Useful for testing, dry runs and development. All objects are lost when the
process terminates.
"""

import asyncio
from typing import NamedTuple

import structlog

from ..core.exceptions import AlreadyExistsError, ConflictError, NotFoundError
from ..models.resources import Resource
from .interface import ResourceKind, ResourceStore

logger = structlog.get_logger()


class StoreWrite(NamedTuple):
    """A mutating call recorded by the store."""

    verb: str
    kind: ResourceKind
    name: str
    namespace: str | None = None


class InMemoryResourceStore(ResourceStore):
    """Dictionary-backed store with Kubernetes-like versioning.

    Objects are deep-copied on the way in and out so callers never share state
    with the store. Every successful create, update and delete is appended to
    ``writes``.
    """

    def __init__(self) -> None:
        self._objects: dict[tuple[ResourceKind, str | None, str], Resource] = {}
        self._lock = asyncio.Lock()
        self._version = 0
        self.writes: list[StoreWrite] = []

    @staticmethod
    def _key(
        kind: ResourceKind, name: str, namespace: str | None
    ) -> tuple[ResourceKind, str | None, str]:
        return kind, namespace if kind.namespaced else None, name

    def _next_version(self) -> str:
        self._version += 1
        return str(self._version)

    def _stamp(self, resource: Resource) -> Resource:
        stored = resource.model_copy(deep=True)
        stored.metadata.resource_version = self._next_version()
        return stored

    def add(self, *resources: Resource) -> None:
        """Seed objects directly, replacing any existing ones. Not recorded in ``writes``."""
        for resource in resources:
            kind = ResourceKind.of(resource)
            self._objects[self._key(kind, resource.name, resource.namespace)] = self._stamp(
                resource
            )

    def peek(
        self, kind: ResourceKind, name: str, namespace: str | None = None
    ) -> Resource | None:
        """Synchronous lookup returning a copy, or None."""
        stored = self._objects.get(self._key(kind, name, namespace))
        return stored.model_copy(deep=True) if stored is not None else None

    def writes_for(self, name: str, verb: str | None = None) -> list[StoreWrite]:
        return [w for w in self.writes if w.name == name and (verb is None or w.verb == verb)]

    async def get(self, kind: ResourceKind, name: str, namespace: str | None = None) -> Resource:
        stored = self._objects.get(self._key(kind, name, namespace))
        if stored is None:
            raise NotFoundError(f"{kind.value} {_display(name, namespace)} not found")
        return stored.model_copy(deep=True)

    async def create(self, resource: Resource) -> Resource:
        kind = ResourceKind.of(resource)
        key = self._key(kind, resource.name, resource.namespace)
        async with self._lock:
            if key in self._objects:
                raise AlreadyExistsError(
                    f"{kind.value} {_display(resource.name, resource.namespace)} already exists"
                )
            stored = self._stamp(resource)
            self._objects[key] = stored
            self.writes.append(StoreWrite("create", kind, resource.name, resource.namespace))
        logger.debug("Created object", kind=kind.value, name=resource.name)
        return stored.model_copy(deep=True)

    async def update(self, resource: Resource) -> Resource:
        kind = ResourceKind.of(resource)
        key = self._key(kind, resource.name, resource.namespace)
        async with self._lock:
            current = self._objects.get(key)
            if current is None:
                raise NotFoundError(
                    f"{kind.value} {_display(resource.name, resource.namespace)} not found"
                )
            expected = resource.metadata.resource_version
            if expected and expected != current.metadata.resource_version:
                raise ConflictError(
                    f"{kind.value} {_display(resource.name, resource.namespace)} was modified "
                    f"(expected version {expected}, found {current.metadata.resource_version})"
                )
            stored = self._stamp(resource)
            self._objects[key] = stored
            self.writes.append(StoreWrite("update", kind, resource.name, resource.namespace))
        logger.debug("Updated object", kind=kind.value, name=resource.name)
        return stored.model_copy(deep=True)

    async def delete(self, kind: ResourceKind, name: str, namespace: str | None = None) -> None:
        key = self._key(kind, name, namespace)
        async with self._lock:
            if key not in self._objects:
                raise NotFoundError(f"{kind.value} {_display(name, namespace)} not found")
            del self._objects[key]
            self.writes.append(StoreWrite("delete", kind, name, namespace))
        logger.debug("Deleted object", kind=kind.value, name=name)


def _display(name: str, namespace: str | None) -> str:
    return f"{namespace}/{name}" if namespace else name
