"""Data models for hub handoff."""

from .instruction import MigrationInstruction, decode_instruction  # noqa: F401
from .resources import (  # noqa: F401
    Condition,
    KlusterletConfig,
    KubeConfigSecret,
    ManagedCluster,
    ObjectMeta,
    Secret,
)
from .results import (  # noqa: F401
    AnnotationResult,
    CredentialResult,
    DetachmentOutcome,
    DetachmentStatus,
    PrepareResult,
)

__all__ = [
    # Instruction
    "MigrationInstruction",
    "decode_instruction",
    # Resources
    "Condition",
    "KlusterletConfig",
    "KubeConfigSecret",
    "ManagedCluster",
    "ObjectMeta",
    "Secret",
    # Results
    "AnnotationResult",
    "CredentialResult",
    "DetachmentOutcome",
    "DetachmentStatus",
    "PrepareResult",
]
