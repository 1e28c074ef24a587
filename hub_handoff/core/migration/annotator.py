"""Marks managed clusters as migrating to a target klusterlet config."""

from collections.abc import Iterable

import structlog

from ...constants import KLUSTERLET_CONFIG_ANNOTATION, MANAGED_CLUSTER_MIGRATING
from ...models.resources import ManagedCluster
from ...models.results import AnnotationResult
from ...store.interface import ResourceKind, ResourceStore
from ..exceptions import ManagedClusterNotFoundError, NotFoundError

logger = structlog.get_logger()


def is_announced(cluster: ManagedCluster, config_name: str) -> bool:
    """True when the cluster is already marked as migrating to ``config_name``."""
    annotations = cluster.metadata.annotations or {}
    return (
        MANAGED_CLUSTER_MIGRATING in annotations
        and annotations.get(KLUSTERLET_CONFIG_ANNOTATION) == config_name
    )


class MembershipAnnotator:
    """Writes the migrating marker and target config annotation on each cluster."""

    def __init__(self, store: ResourceStore):
        self.store = store
        self.logger = logger.bind(component="membership_annotator")

    async def annotate(self, cluster_names: Iterable[str], config_name: str) -> AnnotationResult:
        """Annotate clusters in order, skipping those already announced for this config.

        A failure part-way leaves earlier clusters annotated; redelivery resumes
        safely because already-announced clusters are skipped.

        Raises:
            ManagedClusterNotFoundError: If a named cluster does not exist
            StoreError: If a read or write fails
        """
        result = AnnotationResult()
        for name in cluster_names:
            try:
                cluster = await self.store.get(ResourceKind.MANAGED_CLUSTER, name)
            except NotFoundError as e:
                raise ManagedClusterNotFoundError(f"Managed cluster {name} not found") from e

            if is_announced(cluster, config_name):
                result.skipped.append(name)
                continue

            annotations = dict(cluster.metadata.annotations or {})
            annotations[KLUSTERLET_CONFIG_ANNOTATION] = config_name
            annotations[MANAGED_CLUSTER_MIGRATING] = ""
            cluster.metadata.annotations = annotations

            await self.store.update(cluster)
            self.logger.info("Annotated managed cluster for migration", cluster=name, config=config_name)
            result.annotated.append(name)

        return result
