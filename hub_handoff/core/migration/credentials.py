"""Bootstrap credential propagation."""

import structlog

from ...constants import BOOTSTRAP_SECRET_BACKUP_SUFFIX
from ...models.resources import ObjectMeta, Secret
from ...models.results import CredentialResult
from ...store.interface import ResourceKind, ResourceStore
from ..exceptions import NotFoundError

logger = structlog.get_logger()


def backup_secret_name(name: str) -> str:
    return name + BOOTSTRAP_SECRET_BACKUP_SUFFIX


def build_backup_secret(secret: Secret) -> Secret:
    """Derive the backup secret from the instruction's payload, not from the store."""
    return Secret(
        metadata=ObjectMeta(
            name=backup_secret_name(secret.name),
            namespace=secret.namespace,
        ),
        type=secret.type,
        data=dict(secret.data),
    )


class CredentialPropagator:
    """Upserts the primary bootstrap secret and its backup copy."""

    def __init__(self, store: ResourceStore):
        self.store = store
        self.logger = logger.bind(component="credential_propagator")

    async def propagate(self, secret: Secret) -> CredentialResult:
        """Create or overwrite the primary and backup bootstrap secrets.

        Both objects end up holding exactly the instruction's data. Re-running with
        the same secret converges to the same state.

        Args:
            secret: Bootstrap secret carried by the instruction

        Returns:
            Names of the secrets that were created vs. updated

        Raises:
            StoreError: If any store call fails for a reason other than not-found
        """
        result = CredentialResult()
        for candidate in (secret, build_backup_secret(secret)):
            if await self._upsert(candidate):
                result.created.append(candidate.name)
            else:
                result.updated.append(candidate.name)
        return result

    async def _upsert(self, secret: Secret) -> bool:
        """Returns True when the secret was created."""
        # No resourceVersion: the overwrite is unconditional
        desired = secret.model_copy(deep=True)
        desired.metadata.resource_version = None
        try:
            await self.store.get(ResourceKind.SECRET, secret.name, secret.namespace)
        except NotFoundError:
            self.logger.info(
                "Creating bootstrap secret", secret=secret.name, namespace=secret.namespace
            )
            await self.store.create(desired)
            return True

        self.logger.info("Updating bootstrap secret", secret=secret.name, namespace=secret.namespace)
        await self.store.update(desired)
        return False
