"""Migration-from orchestration with focused components."""

from .annotator import MembershipAnnotator  # noqa: F401
from .credentials import CredentialPropagator  # noqa: F401
from .detachment import DetachmentConfirmer, DetachmentProgress  # noqa: F401
from .klusterlet_config import KlusterletConfigProvisioner  # noqa: F401
from .leases import ClusterLeaseRegistry  # noqa: F401
from .manager import MigrationFromSyncer, MigrationRun  # noqa: F401

__all__ = [
    "ClusterLeaseRegistry",
    "CredentialPropagator",
    "DetachmentConfirmer",
    "DetachmentProgress",
    "KlusterletConfigProvisioner",
    "MembershipAnnotator",
    "MigrationFromSyncer",
    "MigrationRun",
]
