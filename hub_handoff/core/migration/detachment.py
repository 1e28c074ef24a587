"""Confirmed detachment of managed clusters from the source hub."""

import asyncio
from collections.abc import Sequence
from dataclasses import dataclass, field

import structlog

from ...constants import CONDITION_UNKNOWN, DEFAULT_POLL_INTERVAL
from ...models.results import DetachmentOutcome, DetachmentStatus
from ...store.interface import ResourceKind, ResourceStore
from ..exceptions import DetachmentCancelledError, NotFoundError

logger = structlog.get_logger()


@dataclass
class DetachmentProgress:
    """Ticks run and clusters deleted so far by one wait."""

    ticks: int = 0
    detached: list[str] = field(default_factory=list)


class DetachmentConfirmer:
    """Deletes managed clusters once their agents are observed to have left.

    The source hub loses contact with an agent that re-bootstrapped against the
    destination hub, so its Available condition turns Unknown. Only then is the
    managed cluster deleted here. Each tick walks the whole batch from the top and
    stops at the first cluster that is still reachable.
    """

    def __init__(self, store: ResourceStore, poll_interval: float = DEFAULT_POLL_INTERVAL):
        if poll_interval <= 0:
            raise ValueError("poll_interval must be positive")
        self.store = store
        self.poll_interval = poll_interval
        self.logger = logger.bind(component="detachment_confirmer")

    async def poll_once(
        self, cluster_names: Sequence[str], detached: list[str] | None = None
    ) -> bool:
        """Run one tick over the batch.

        Args:
            cluster_names: Clusters to confirm, in instruction order
            detached: Optional list collecting the clusters deleted during this tick

        Returns:
            True if every cluster was absent or deleted during this pass

        Raises:
            StoreError: If a read or delete fails for a reason other than not-found
        """
        for name in cluster_names:
            try:
                cluster = await self.store.get(ResourceKind.MANAGED_CLUSTER, name)
            except NotFoundError:
                continue

            availability = cluster.availability()
            if availability != CONDITION_UNKNOWN:
                self.logger.debug(
                    "Managed cluster still attached", cluster=name, available=availability
                )
                return False

            try:
                await self.store.delete(ResourceKind.MANAGED_CLUSTER, name)
            except NotFoundError:
                # Another run deleted it first
                continue
            self.logger.info("Detached managed cluster", cluster=name)
            if detached is not None:
                detached.append(name)

        return True

    async def wait_for_detachment(
        self,
        cluster_names: Sequence[str],
        stop_event: asyncio.Event | None = None,
        progress: DetachmentProgress | None = None,
    ) -> DetachmentProgress:
        """Tick until a full pass confirms every cluster gone.

        The first tick runs immediately. There is no deadline; use ``confirm`` with a
        timeout for a bounded wait.

        Args:
            cluster_names: Clusters to confirm, in instruction order
            stop_event: Setting it stops the wait before the next tick
            progress: Updated in place, so callers can inspect it after interruption

        Returns:
            The final progress

        Raises:
            DetachmentCancelledError: If ``stop_event`` is set before completion
            StoreError: If a read or delete fails
        """
        if progress is None:
            progress = DetachmentProgress()

        while True:
            if stop_event is not None and stop_event.is_set():
                raise DetachmentCancelledError(
                    f"Detachment stopped after {progress.ticks} ticks"
                )

            progress.ticks += 1
            if await self.poll_once(cluster_names, progress.detached):
                return progress

            await self._sleep(stop_event)

    async def _sleep(self, stop_event: asyncio.Event | None) -> None:
        if stop_event is None:
            await asyncio.sleep(self.poll_interval)
            return
        try:
            await asyncio.wait_for(stop_event.wait(), timeout=self.poll_interval)
        except TimeoutError:
            pass

    async def confirm(
        self,
        cluster_names: Sequence[str],
        timeout: float | None = None,
        stop_event: asyncio.Event | None = None,
    ) -> DetachmentOutcome:
        """Wait for detachment and report how it ended instead of raising.

        Args:
            cluster_names: Clusters to confirm, in instruction order
            timeout: Seconds before giving up with TIMED_OUT; None waits indefinitely
            stop_event: Setting it ends the wait with CANCELLED

        Returns:
            DetachmentOutcome describing the result
        """
        clusters = list(cluster_names)
        progress = DetachmentProgress()

        def _outcome(status: DetachmentStatus, error: str | None = None) -> DetachmentOutcome:
            return DetachmentOutcome(
                status=status,
                clusters=clusters,
                detached=list(progress.detached),
                ticks=progress.ticks,
                error=error,
            )

        try:
            if timeout is None:
                await self.wait_for_detachment(clusters, stop_event, progress)
            else:
                await asyncio.wait_for(
                    self.wait_for_detachment(clusters, stop_event, progress), timeout=timeout
                )
        except TimeoutError:
            self.logger.warning(
                "Timed out waiting for detachment", clusters=clusters, timeout=timeout
            )
            return _outcome(
                DetachmentStatus.TIMED_OUT, f"Managed clusters not detached within {timeout}s"
            )
        except DetachmentCancelledError as e:
            self.logger.info("Detachment wait cancelled", clusters=clusters, ticks=progress.ticks)
            return _outcome(DetachmentStatus.CANCELLED, str(e))
        except Exception as e:
            self.logger.error("Failed to detach managed clusters", clusters=clusters, error=str(e))
            return _outcome(DetachmentStatus.FAILED, str(e))

        self.logger.info("All managed clusters detached", clusters=clusters, ticks=progress.ticks)
        return _outcome(DetachmentStatus.DETACHED)
