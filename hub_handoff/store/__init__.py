"""Resource store interface and implementations."""

from .interface import ResourceKind, ResourceStore  # noqa: F401
from .memory import InMemoryResourceStore, StoreWrite  # noqa: F401

__all__ = ["InMemoryResourceStore", "ResourceKind", "ResourceStore", "StoreWrite"]
