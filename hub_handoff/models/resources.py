"""Resource models mirroring the objects handled on the source hub."""

import base64
import binascii
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

from ..constants import (
    BOOTSTRAP_TYPE_LOCAL_SECRETS,
    CLUSTER_API_GROUP,
    CLUSTER_API_VERSION,
    KLUSTERLET_CONFIG_API_GROUP,
    KLUSTERLET_CONFIG_API_VERSION,
    MANAGED_CLUSTER_CONDITION_AVAILABLE,
)

ConditionStatus = Literal["True", "False", "Unknown"]


class ObjectMeta(BaseModel):
    """Kubernetes object metadata.

    Only the fields the handoff reads are declared; the rest (finalizers,
    ownerReferences, uid, ...) are kept under their API names so a read-modify-write
    sends them back unchanged.
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    name: str = Field(min_length=1)
    namespace: str | None = None
    labels: dict[str, str] | None = None
    annotations: dict[str, str] | None = None
    resource_version: str | None = Field(default=None, alias="resourceVersion")


class Resource(BaseModel):
    """Common behaviour for stored objects."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    metadata: ObjectMeta

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def namespace(self) -> str | None:
        return self.metadata.namespace

    def to_manifest(self) -> dict[str, Any]:
        """Render as a Kubernetes JSON manifest."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class Secret(Resource):
    """Bootstrap credential holding opaque key/value byte blobs."""

    api_version: str = Field(default="v1", alias="apiVersion")
    kind: Literal["Secret"] = "Secret"
    type: str | None = None
    data: dict[str, bytes] = Field(default_factory=dict)

    @field_validator("data", mode="before")
    @classmethod
    def _decode_data(cls, value: Any) -> Any:
        """Decode base64 string values; raw bytes pass through untouched."""
        if value is None:
            return {}
        if not isinstance(value, dict):
            return value

        decoded: dict[str, Any] = {}
        for key, item in value.items():
            if isinstance(item, str):
                try:
                    decoded[key] = base64.b64decode(item, validate=True)
                except binascii.Error as e:
                    raise ValueError(f"data[{key!r}] is not valid base64") from e
            else:
                decoded[key] = item
        return decoded

    @field_serializer("data", when_used="json")
    def _encode_data(self, data: dict[str, bytes]) -> dict[str, str]:
        return {key: base64.b64encode(item).decode("ascii") for key, item in data.items()}


class KubeConfigSecret(BaseModel):
    """Reference to a bootstrap kubeconfig secret (name only)."""

    name: str = Field(min_length=1)


class LocalSecretsConfig(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    kube_config_secrets: list[KubeConfigSecret] = Field(
        default_factory=list, alias="kubeConfigSecrets"
    )
    hub_connection_timeout_seconds: int | None = Field(
        default=None, alias="hubConnectionTimeoutSeconds"
    )


class BootstrapKubeConfigs(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    type: str = BOOTSTRAP_TYPE_LOCAL_SECRETS
    local_secrets_config: LocalSecretsConfig = Field(
        default_factory=LocalSecretsConfig, alias="localSecretsConfig"
    )


class KlusterletConfigSpec(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    bootstrap_kube_configs: BootstrapKubeConfigs = Field(
        default_factory=BootstrapKubeConfigs, alias="bootstrapKubeConfigs"
    )


class KlusterletConfig(Resource):
    """Cluster-scoped descriptor telling an agent which bootstrap secrets to trust."""

    api_version: str = Field(
        default=f"{KLUSTERLET_CONFIG_API_GROUP}/{KLUSTERLET_CONFIG_API_VERSION}",
        alias="apiVersion",
    )
    kind: Literal["KlusterletConfig"] = "KlusterletConfig"
    spec: KlusterletConfigSpec = Field(default_factory=KlusterletConfigSpec)

    def bootstrap_secret_names(self) -> list[str]:
        """Names of the referenced bootstrap secrets, in order."""
        local = self.spec.bootstrap_kube_configs.local_secrets_config
        return [secret.name for secret in local.kube_config_secrets]

    def with_bootstrap_secrets(self, *names: str) -> "KlusterletConfig":
        """Return a copy referencing exactly ``names`` as bootstrap secrets."""
        config = self.model_copy(deep=True)
        config.spec.bootstrap_kube_configs.local_secrets_config.kube_config_secrets = [
            KubeConfigSecret(name=name) for name in names
        ]
        return config


class Condition(BaseModel):
    """Status condition (type/status pair with bookkeeping)."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    type: str
    status: ConditionStatus
    reason: str = ""
    message: str = ""
    last_transition_time: str | None = Field(default=None, alias="lastTransitionTime")


class ManagedClusterStatus(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    conditions: list[Condition] = Field(default_factory=list)


class ManagedCluster(Resource):
    """A remote cluster under this hub's control."""

    api_version: str = Field(
        default=f"{CLUSTER_API_GROUP}/{CLUSTER_API_VERSION}", alias="apiVersion"
    )
    kind: Literal["ManagedCluster"] = "ManagedCluster"
    spec: dict[str, Any] = Field(default_factory=dict)
    status: ManagedClusterStatus = Field(default_factory=ManagedClusterStatus)

    def condition(self, condition_type: str) -> Condition | None:
        for condition in self.status.conditions:
            if condition.type == condition_type:
                return condition
        return None

    def availability(self) -> ConditionStatus | None:
        """Status of the Available condition, or None when it is not reported."""
        condition = self.condition(MANAGED_CLUSTER_CONDITION_AVAILABLE)
        return condition.status if condition else None
