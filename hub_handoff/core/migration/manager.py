"""Migration-from syncer: the source hub's side of a managed cluster migration."""

import asyncio
from collections import Counter, deque
from dataclasses import dataclass

import structlog

from ..settings import DETACH_TIMEOUT, OUTCOME_HISTORY, POLL_INTERVAL
from ...models.instruction import MigrationInstruction, decode_instruction
from ...models.results import DetachmentOutcome, DetachmentStatus, PrepareResult
from ...store.interface import ResourceStore
from .annotator import MembershipAnnotator
from .credentials import CredentialPropagator, backup_secret_name
from .detachment import DetachmentConfirmer
from .klusterlet_config import KlusterletConfigProvisioner
from .leases import ClusterLeaseRegistry

logger = structlog.get_logger()


@dataclass
class MigrationRun:
    """Both result channels of one instruction.

    ``prepare`` is available as soon as the run starts; ``detachment`` resolves
    once the managed clusters are confirmed gone (or the wait ends otherwise).
    """

    instruction: MigrationInstruction
    prepare: PrepareResult
    detachment: "asyncio.Task[DetachmentOutcome]"


class MigrationFromSyncer:
    """Orchestrates handing managed clusters off from this hub using focused components.

    Stages run strictly in order: bootstrap secrets, klusterlet config, cluster
    annotations, then confirmed detachment. Every stage before detachment is
    idempotent, so redelivering an instruction after a failure is safe.
    """

    def __init__(
        self,
        store: ResourceStore,
        poll_interval: float = POLL_INTERVAL,
        detach_timeout: float | None = DETACH_TIMEOUT,
        exclusive: bool = False,
        outcome_history: int = OUTCOME_HISTORY,
        leases: ClusterLeaseRegistry | None = None,
    ):
        self.logger = logger.bind(component="migration_from_syncer")
        self.store = store
        self.detach_timeout = detach_timeout
        self.exclusive = exclusive

        # Initialize focused components
        self.credentials = CredentialPropagator(store)
        self.klusterlet_configs = KlusterletConfigProvisioner(store)
        self.annotator = MembershipAnnotator(store)
        self.detacher = DetachmentConfirmer(store, poll_interval)
        self.leases = leases or ClusterLeaseRegistry()

        self.outcomes: deque[DetachmentOutcome] = deque(maxlen=outcome_history)
        self.stats: Counter[str] = Counter()

    async def prepare(self, instruction: MigrationInstruction) -> PrepareResult:
        """Run the preparation stages.

        Raises:
            StoreError: If any stage fails; earlier stages are not rolled back
        """
        secret = instruction.bootstrap_secret
        backup_name = backup_secret_name(secret.name)
        log = self.logger.bind(
            config=instruction.klusterlet_config.name,
            clusters=list(instruction.managed_clusters),
        )

        try:
            credentials = await self.credentials.propagate(secret)
            config_created = await self.klusterlet_configs.ensure(
                instruction.klusterlet_config, secret.name, backup_name
            )
            annotations = await self.annotator.annotate(
                instruction.managed_clusters, instruction.klusterlet_config.name
            )
        except Exception as e:
            log.error("Migration preparation failed", error=str(e))
            self.stats["prepare_failed"] += 1
            raise

        self.stats["prepared"] += 1
        log.info(
            "Migration prepared",
            annotated=annotations.annotated,
            skipped=annotations.skipped,
            config_created=config_created,
        )
        return PrepareResult(
            bootstrap_secret=secret.name,
            backup_secret=backup_name,
            klusterlet_config=instruction.klusterlet_config.name,
            klusterlet_config_created=config_created,
            credentials=credentials,
            annotations=annotations,
        )

    async def detach(
        self,
        instruction: MigrationInstruction,
        stop_event: asyncio.Event | None = None,
    ) -> DetachmentOutcome:
        """Wait for the instruction's clusters to detach and record the outcome."""
        outcome = await self.detacher.confirm(
            instruction.managed_clusters, timeout=self.detach_timeout, stop_event=stop_event
        )
        self._record(outcome)
        return outcome

    async def start(
        self, payload: bytes | str, stop_event: asyncio.Event | None = None
    ) -> MigrationRun:
        """Decode and prepare now; detach in a background task.

        With ``exclusive`` set, the instruction's cluster leases are held from
        preparation until the detachment task finishes.

        Raises:
            DecodeError: If the payload is malformed
            StoreError: If preparation fails
        """
        instruction = decode_instruction(payload)

        held = await self.leases.acquire(instruction.managed_clusters) if self.exclusive else []
        try:
            prepare = await self.prepare(instruction)
        except BaseException:
            self.leases.release(held)
            raise

        task = asyncio.create_task(self.detach(instruction, stop_event))
        if held:
            # Runs even when the task is cancelled before its first step
            task.add_done_callback(lambda _: self.leases.release(held))
        return MigrationRun(instruction=instruction, prepare=prepare, detachment=task)

    async def sync(
        self, payload: bytes | str, stop_event: asyncio.Event | None = None
    ) -> PrepareResult:
        """Handle one migration instruction end to end.

        Preparation failures are raised. Detachment blocks until it completes, is
        stopped or times out; a failed detachment is logged and recorded in
        ``outcomes``/``stats`` rather than raised.
        """
        run = await self.start(payload, stop_event)
        try:
            outcome = await run.detachment
        except asyncio.CancelledError:
            run.detachment.cancel()
            raise

        if not outcome.succeeded:
            self.logger.error(
                "Failed to detach managed clusters",
                status=outcome.status.value,
                clusters=outcome.clusters,
                detached=outcome.detached,
                error=outcome.error,
            )
        return run.prepare

    def _record(self, outcome: DetachmentOutcome) -> None:
        self.outcomes.append(outcome)
        self.stats[f"detachment_{outcome.status.value}"] += 1
        if outcome.status is DetachmentStatus.DETACHED:
            self.stats["clusters_detached"] += len(outcome.detached)
