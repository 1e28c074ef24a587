"""Resource store backed by the hub's Kubernetes API server."""

import asyncio
import json
from collections.abc import Callable
from typing import Any, TypeVar

import kubernetes
import kubernetes.client
import kubernetes.config
import structlog
from kubernetes.client import ApiException

from ..constants import (
    CLUSTER_API_GROUP,
    CLUSTER_API_VERSION,
    KLUSTERLET_CONFIG_API_GROUP,
    KLUSTERLET_CONFIG_API_VERSION,
    KLUSTERLET_CONFIG_PLURAL,
    MANAGED_CLUSTER_PLURAL,
)
from ..core.exceptions import (
    AlreadyExistsError,
    ConfigurationError,
    ConflictError,
    NotFoundError,
    StoreError,
)
from ..models.resources import Resource
from .interface import ResourceKind, ResourceStore

logger = structlog.get_logger()

T = TypeVar("T")

# (group, version, plural) for cluster-scoped custom resources
_CUSTOM_RESOURCES: dict[ResourceKind, tuple[str, str, str]] = {
    ResourceKind.KLUSTERLET_CONFIG: (
        KLUSTERLET_CONFIG_API_GROUP,
        KLUSTERLET_CONFIG_API_VERSION,
        KLUSTERLET_CONFIG_PLURAL,
    ),
    ResourceKind.MANAGED_CLUSTER: (CLUSTER_API_GROUP, CLUSTER_API_VERSION, MANAGED_CLUSTER_PLURAL),
}


def load_api_client(
    kubeconfig: str | None = None, context: str | None = None
) -> kubernetes.client.ApiClient:
    """Build an API client: in-cluster config first, then kubeconfig."""
    if kubeconfig is None and context is None:
        try:
            kubernetes.config.load_incluster_config()
            logger.info("Using in-cluster Kubernetes configuration")
            return kubernetes.client.ApiClient()
        except kubernetes.config.ConfigException:
            pass

    try:
        api_client = kubernetes.config.new_client_from_config(
            config_file=kubeconfig, context=context
        )
    except kubernetes.config.ConfigException as e:
        raise ConfigurationError(f"Unable to load Kubernetes configuration: {e}") from e
    logger.info(
        "Using kubeconfig for Kubernetes configuration", kubeconfig=kubeconfig, context=context
    )
    return api_client


class KubernetesResourceStore(ResourceStore):
    """Store that reads and writes hub objects through the Kubernetes API.

    Secrets go through ``CoreV1Api``; klusterlet configs and managed clusters are
    cluster-scoped custom resources served by ``CustomObjectsApi``. The client is
    synchronous, so each call runs in a worker thread.
    """

    def __init__(self, api_client: kubernetes.client.ApiClient):
        self.api_client = api_client
        self.core_api = kubernetes.client.CoreV1Api(api_client)
        self.custom_api = kubernetes.client.CustomObjectsApi(api_client)
        self.logger = logger.bind(component="kubernetes_store")

    @classmethod
    def from_config(
        cls, kubeconfig: str | None = None, context: str | None = None
    ) -> "KubernetesResourceStore":
        return cls(load_api_client(kubeconfig, context))

    async def _call(self, verb: str, kind: ResourceKind, name: str, fn: Callable[[], T]) -> T:
        try:
            return await asyncio.to_thread(fn)
        except ApiException as e:
            raise _translate(e, verb, kind, name) from e
        except Exception as e:  # transport failures (urllib3, SSL, timeouts)
            self.logger.error(
                "Kubernetes API call failed",
                verb=verb,
                kind=kind.value,
                name=name,
                error=str(e),
            )
            raise StoreError(f"{verb} {kind.value} {name} failed: {e}") from e

    async def get(self, kind: ResourceKind, name: str, namespace: str | None = None) -> Resource:
        if kind is ResourceKind.SECRET:
            raw = await self._call(
                "get",
                kind,
                name,
                lambda: self.core_api.read_namespaced_secret(
                    name=name, namespace=namespace, _preload_content=False
                ),
            )
            body = _json_body(raw)
        else:
            group, version, plural = _CUSTOM_RESOURCES[kind]
            body = await self._call(
                "get",
                kind,
                name,
                lambda: self.custom_api.get_cluster_custom_object(
                    group=group, version=version, plural=plural, name=name
                ),
            )
        return kind.model.model_validate(body)

    async def create(self, resource: Resource) -> Resource:
        kind = ResourceKind.of(resource)
        manifest = _manifest_for_write(resource)
        if kind is ResourceKind.SECRET:
            raw = await self._call(
                "create",
                kind,
                resource.name,
                lambda: self.core_api.create_namespaced_secret(
                    namespace=resource.namespace, body=manifest, _preload_content=False
                ),
            )
            body = _json_body(raw)
        else:
            group, version, plural = _CUSTOM_RESOURCES[kind]
            body = await self._call(
                "create",
                kind,
                resource.name,
                lambda: self.custom_api.create_cluster_custom_object(
                    group=group, version=version, plural=plural, body=manifest
                ),
            )
        return kind.model.model_validate(body)

    async def update(self, resource: Resource) -> Resource:
        kind = ResourceKind.of(resource)
        manifest = _manifest_for_write(resource)
        if kind is ResourceKind.SECRET:
            raw = await self._call(
                "update",
                kind,
                resource.name,
                lambda: self.core_api.replace_namespaced_secret(
                    name=resource.name,
                    namespace=resource.namespace,
                    body=manifest,
                    _preload_content=False,
                ),
            )
            body = _json_body(raw)
        else:
            group, version, plural = _CUSTOM_RESOURCES[kind]
            body = await self._call(
                "update",
                kind,
                resource.name,
                lambda: self.custom_api.replace_cluster_custom_object(
                    group=group, version=version, plural=plural, name=resource.name, body=manifest
                ),
            )
        return kind.model.model_validate(body)

    async def delete(self, kind: ResourceKind, name: str, namespace: str | None = None) -> None:
        if kind is ResourceKind.SECRET:
            await self._call(
                "delete",
                kind,
                name,
                lambda: self.core_api.delete_namespaced_secret(name=name, namespace=namespace),
            )
            return
        group, version, plural = _CUSTOM_RESOURCES[kind]
        await self._call(
            "delete",
            kind,
            name,
            lambda: self.custom_api.delete_cluster_custom_object(
                group=group, version=version, plural=plural, name=name
            ),
        )

    async def close(self) -> None:
        await asyncio.to_thread(self.api_client.close)


def _manifest_for_write(resource: Resource) -> dict[str, Any]:
    manifest = resource.to_manifest()
    # Status is owned by the cluster's registration controller, never written here
    manifest.pop("status", None)
    return manifest


def _json_body(response: Any) -> dict[str, Any]:
    """Decode a raw (non-preloaded) response.

    Secrets are read raw so ``data`` stays base64 text; the generated models would
    otherwise hand back ``V1Secret`` objects.
    """
    return json.loads(response.data)


def _translate(error: ApiException, verb: str, kind: ResourceKind, name: str) -> StoreError:
    message = f"{verb} {kind.value} {name} failed: {error.status} {error.reason}"
    if error.status == 404:
        return NotFoundError(message)
    if error.status == 409:
        return AlreadyExistsError(message) if verb == "create" else ConflictError(message)
    return StoreError(message)
