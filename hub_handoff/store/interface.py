"""
Resource store interface.

The store is the only shared state between the source hub, the destination hub and
the agent running on each managed cluster. Implementations translate their backend
failures into the exceptions below:

- NotFoundError: object does not exist (get, update, delete)
- AlreadyExistsError: object exists (create)
- ConflictError: stale resourceVersion (update)
- StoreError: anything else
"""

from abc import ABC, abstractmethod
from enum import Enum

from ..models.resources import KlusterletConfig, ManagedCluster, Resource, Secret


class ResourceKind(Enum):
    """Kinds of objects the handoff reads and writes."""

    SECRET = "Secret"
    KLUSTERLET_CONFIG = "KlusterletConfig"
    MANAGED_CLUSTER = "ManagedCluster"

    @property
    def model(self) -> type[Resource]:
        return _KIND_MODELS[self]

    @property
    def namespaced(self) -> bool:
        return self is ResourceKind.SECRET

    @classmethod
    def of(cls, resource: Resource) -> "ResourceKind":
        for kind, model in _KIND_MODELS.items():
            if isinstance(resource, model):
                return kind
        raise TypeError(f"Unsupported resource type: {type(resource).__name__}")


_KIND_MODELS: dict[ResourceKind, type[Resource]] = {
    ResourceKind.SECRET: Secret,
    ResourceKind.KLUSTERLET_CONFIG: KlusterletConfig,
    ResourceKind.MANAGED_CLUSTER: ManagedCluster,
}


class ResourceStore(ABC):
    """Abstract base class for resource stores.

    Each call is independently consistent; there are no multi-object transactions.
    Reads after a successful write observe that write.
    """

    @abstractmethod
    async def get(self, kind: ResourceKind, name: str, namespace: str | None = None) -> Resource:
        """Fetch an object.

        Raises:
            NotFoundError: If the object does not exist
            StoreError: On any other failure
        """

    @abstractmethod
    async def create(self, resource: Resource) -> Resource:
        """Create an object and return the stored copy.

        Raises:
            AlreadyExistsError: If an object with the same key exists
            StoreError: On any other failure
        """

    @abstractmethod
    async def update(self, resource: Resource) -> Resource:
        """Replace an existing object and return the stored copy.

        An empty ``resourceVersion`` replaces unconditionally; a set one must match.

        Raises:
            NotFoundError: If the object does not exist
            ConflictError: If ``resourceVersion`` is stale
            StoreError: On any other failure
        """

    @abstractmethod
    async def delete(self, kind: ResourceKind, name: str, namespace: str | None = None) -> None:
        """Delete an object.

        Raises:
            NotFoundError: If the object does not exist
            StoreError: On any other failure
        """

    async def close(self) -> None:  # noqa: B027
        """Release backend resources."""
