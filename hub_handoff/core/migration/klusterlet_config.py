"""Target klusterlet config provisioning."""

import structlog

from ...models.resources import KlusterletConfig
from ...store.interface import ResourceKind, ResourceStore
from ..exceptions import NotFoundError

logger = structlog.get_logger()


class KlusterletConfigProvisioner:
    """Ensures the klusterlet config the agents will bootstrap from exists."""

    def __init__(self, store: ResourceStore):
        self.store = store
        self.logger = logger.bind(component="klusterlet_config_provisioner")

    async def ensure(self, config: KlusterletConfig, primary: str, backup: str) -> bool:
        """Create the config referencing ``[primary, backup]`` unless it already exists.

        An existing config with the same name is left as-is, whatever it references.

        Returns:
            True if the config was created
        """
        desired = config.with_bootstrap_secrets(primary, backup)
        try:
            await self.store.get(ResourceKind.KLUSTERLET_CONFIG, desired.name)
        except NotFoundError:
            self.logger.info(
                "Creating klusterlet config",
                config=desired.name,
                bootstrap_secrets=desired.bootstrap_secret_names(),
            )
            await self.store.create(desired)
            return True

        self.logger.debug("Klusterlet config already exists", config=desired.name)
        return False
