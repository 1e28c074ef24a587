"""Tests for the in-memory resource store."""

import pytest

from hub_handoff.core.exceptions import AlreadyExistsError, ConflictError, NotFoundError
from hub_handoff.store.interface import ResourceKind
from hub_handoff.store.memory import InMemoryResourceStore, StoreWrite

from .conftest import make_cluster, make_config, make_secret


class TestInMemoryResourceStore:
    """Test InMemoryResourceStore semantics."""

    @pytest.mark.asyncio
    async def test_create_then_get(self, store: InMemoryResourceStore):
        created = await store.create(make_secret("s1", "ns"))

        fetched = await store.get(ResourceKind.SECRET, "s1", "ns")

        assert fetched == created
        assert fetched.metadata.resource_version

    @pytest.mark.asyncio
    async def test_get_missing_raises_not_found(self, store: InMemoryResourceStore):
        with pytest.raises(NotFoundError):
            await store.get(ResourceKind.MANAGED_CLUSTER, "nope")

    @pytest.mark.asyncio
    async def test_secrets_are_namespaced(self, store: InMemoryResourceStore):
        await store.create(make_secret("s1", "ns-a"))

        with pytest.raises(NotFoundError):
            await store.get(ResourceKind.SECRET, "s1", "ns-b")

    @pytest.mark.asyncio
    async def test_cluster_scoped_kinds_ignore_namespace(self, store: InMemoryResourceStore):
        await store.create(make_config("cfg"))

        fetched = await store.get(ResourceKind.KLUSTERLET_CONFIG, "cfg", "anything")

        assert fetched.name == "cfg"

    @pytest.mark.asyncio
    async def test_create_existing_raises(self, store: InMemoryResourceStore):
        await store.create(make_config("cfg"))
        with pytest.raises(AlreadyExistsError):
            await store.create(make_config("cfg"))

    @pytest.mark.asyncio
    async def test_update_with_stale_version_conflicts(self, store: InMemoryResourceStore):
        store.add(make_cluster("c1"))
        first = await store.get(ResourceKind.MANAGED_CLUSTER, "c1")
        second = await store.get(ResourceKind.MANAGED_CLUSTER, "c1")

        await store.update(first)

        with pytest.raises(ConflictError):
            await store.update(second)

    @pytest.mark.asyncio
    async def test_update_without_version_is_unconditional(self, store: InMemoryResourceStore):
        store.add(make_secret("s1", "ns", data={"k": b"old"}))

        await store.update(make_secret("s1", "ns", data={"k": b"new"}))

        fetched = await store.get(ResourceKind.SECRET, "s1", "ns")
        assert fetched.data == {"k": b"new"}

    @pytest.mark.asyncio
    async def test_update_missing_raises_not_found(self, store: InMemoryResourceStore):
        with pytest.raises(NotFoundError):
            await store.update(make_cluster("ghost"))

    @pytest.mark.asyncio
    async def test_delete_twice(self, store: InMemoryResourceStore):
        store.add(make_cluster("c1"))

        await store.delete(ResourceKind.MANAGED_CLUSTER, "c1")

        with pytest.raises(NotFoundError):
            await store.delete(ResourceKind.MANAGED_CLUSTER, "c1")

    @pytest.mark.asyncio
    async def test_returned_objects_are_copies(self, store: InMemoryResourceStore):
        store.add(make_cluster("c1"))

        fetched = await store.get(ResourceKind.MANAGED_CLUSTER, "c1")
        fetched.metadata.annotations = {"changed": "locally"}

        again = await store.get(ResourceKind.MANAGED_CLUSTER, "c1")
        assert again.metadata.annotations is None

    @pytest.mark.asyncio
    async def test_writes_are_recorded(self, store: InMemoryResourceStore):
        store.add(make_cluster("c1"))

        await store.create(make_config("cfg"))
        cluster = await store.get(ResourceKind.MANAGED_CLUSTER, "c1")
        await store.update(cluster)
        await store.delete(ResourceKind.MANAGED_CLUSTER, "c1")

        assert store.writes == [
            StoreWrite("create", ResourceKind.KLUSTERLET_CONFIG, "cfg"),
            StoreWrite("update", ResourceKind.MANAGED_CLUSTER, "c1"),
            StoreWrite("delete", ResourceKind.MANAGED_CLUSTER, "c1"),
        ]
        assert store.writes_for("c1", "update") == [store.writes[1]]
