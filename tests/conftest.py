"""Shared pytest fixtures for hub handoff tests."""

import base64
import json
from datetime import UTC, datetime
from typing import Any

import pytest

from hub_handoff.constants import (
    CONDITION_TRUE,
    KLUSTERLET_CONFIG_ANNOTATION,
    MANAGED_CLUSTER_CONDITION_AVAILABLE,
    MANAGED_CLUSTER_MIGRATING,
)
from hub_handoff.core.exceptions import StoreError
from hub_handoff.models.instruction import MigrationInstruction
from hub_handoff.models.resources import (
    Condition,
    KlusterletConfig,
    ManagedCluster,
    ObjectMeta,
    Secret,
)
from hub_handoff.store.interface import ResourceKind
from hub_handoff.store.memory import InMemoryResourceStore

BOOTSTRAP_NAMESPACE = "multicluster-engine"
BOOTSTRAP_SECRET = "bootstrap-hub2"
KLUSTERLET_CONFIG = "migration-hub2"
KUBECONFIG_BYTES = b"apiVersion: v1\nkind: Config\nclusters: []\n"


def make_secret(
    name: str = BOOTSTRAP_SECRET,
    namespace: str = BOOTSTRAP_NAMESPACE,
    data: dict[str, bytes] | None = None,
) -> Secret:
    return Secret(
        metadata=ObjectMeta(name=name, namespace=namespace),
        data=data if data is not None else {"kubeconfig": KUBECONFIG_BYTES},
    )


def make_config(name: str = KLUSTERLET_CONFIG) -> KlusterletConfig:
    return KlusterletConfig(metadata=ObjectMeta(name=name))


def set_condition(
    cluster: ManagedCluster,
    condition_type: str,
    status: str,
    reason: str = "",
    message: str = "",
) -> None:
    """Add or replace a condition the way the registration controller does.

    The transition time only moves when the status changes.
    """
    existing = cluster.condition(condition_type)
    if existing is not None and existing.status == status:
        existing.reason = reason
        existing.message = message
        return

    condition = Condition(
        type=condition_type,
        status=status,
        reason=reason,
        message=message,
        last_transition_time=datetime.now(UTC).strftime("%Y-%m-%dT%H:%M:%SZ"),
    )
    cluster.status.conditions = [
        c for c in cluster.status.conditions if c.type != condition_type
    ] + [condition]


def make_cluster(
    name: str,
    available: str | None = CONDITION_TRUE,
    annotations: dict[str, str] | None = None,
) -> ManagedCluster:
    cluster = ManagedCluster(metadata=ObjectMeta(name=name, annotations=annotations))
    if available is not None:
        set_condition(cluster, MANAGED_CLUSTER_CONDITION_AVAILABLE, available)
    return cluster


def announced(config_name: str = KLUSTERLET_CONFIG) -> dict[str, str]:
    """Annotations of a cluster already marked as migrating to ``config_name``."""
    return {MANAGED_CLUSTER_MIGRATING: "", KLUSTERLET_CONFIG_ANNOTATION: config_name}


def make_payload(
    clusters: list[str],
    secret_data: dict[str, bytes] | None = None,
    config_name: str = KLUSTERLET_CONFIG,
) -> bytes:
    """Serialize an instruction the way the event transport delivers it."""
    data = secret_data if secret_data is not None else {"kubeconfig": KUBECONFIG_BYTES}
    document: dict[str, Any] = {
        "bootstrapSecret": {
            "apiVersion": "v1",
            "kind": "Secret",
            "metadata": {"name": BOOTSTRAP_SECRET, "namespace": BOOTSTRAP_NAMESPACE},
            "data": {key: base64.b64encode(value).decode() for key, value in data.items()},
        },
        "klusterletConfig": {
            "apiVersion": "config.open-cluster-management.io/v1alpha1",
            "kind": "KlusterletConfig",
            "metadata": {"name": config_name},
            "spec": {},
        },
        "managedClusters": clusters,
    }
    return json.dumps(document).encode()


def make_instruction(clusters: list[str], **kwargs: Any) -> MigrationInstruction:
    return MigrationInstruction.model_validate_json(make_payload(clusters, **kwargs))


def set_availability(store: InMemoryResourceStore, name: str, status: str) -> None:
    """Simulate the registration controller updating a cluster's Available condition."""
    cluster = store.peek(ResourceKind.MANAGED_CLUSTER, name)
    assert cluster is not None, f"cluster {name} not in store"
    set_condition(cluster, MANAGED_CLUSTER_CONDITION_AVAILABLE, status)
    store.add(cluster)


class FailingStore(InMemoryResourceStore):
    """In-memory store that fails selected calls with StoreError."""

    def __init__(self, fail_on: set[tuple[str, str]] | None = None):
        super().__init__()
        self.fail_on = fail_on or set()
        self.calls: list[tuple[str, str]] = []

    def _check(self, verb: str, name: str) -> None:
        self.calls.append((verb, name))
        if (verb, name) in self.fail_on:
            raise StoreError(f"injected {verb} failure for {name}")

    async def get(self, kind, name, namespace=None):
        self._check("get", name)
        return await super().get(kind, name, namespace)

    async def create(self, resource):
        self._check("create", resource.name)
        return await super().create(resource)

    async def update(self, resource):
        self._check("update", resource.name)
        return await super().update(resource)

    async def delete(self, kind, name, namespace=None):
        self._check("delete", name)
        return await super().delete(kind, name, namespace)


@pytest.fixture
def store() -> InMemoryResourceStore:
    """Empty in-memory resource store."""
    return InMemoryResourceStore()


@pytest.fixture
def clusters() -> list[str]:
    return ["c1", "c2"]


@pytest.fixture
def hub_store(store: InMemoryResourceStore, clusters: list[str]) -> InMemoryResourceStore:
    """Store holding the managed clusters named by the default instruction, all available."""
    store.add(*(make_cluster(name) for name in clusters))
    return store
