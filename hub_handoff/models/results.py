"""Result models reported by the migration-from syncer."""

from enum import Enum

from pydantic import BaseModel, Field


class DetachmentStatus(Enum):
    """How a detachment wait ended."""

    DETACHED = "detached"
    TIMED_OUT = "timed_out"
    CANCELLED = "cancelled"
    FAILED = "failed"


class CredentialResult(BaseModel):
    """Which bootstrap secrets were created vs. overwritten."""

    created: list[str] = Field(default_factory=list)
    updated: list[str] = Field(default_factory=list)


class AnnotationResult(BaseModel):
    """Managed clusters written vs. skipped by the annotator."""

    annotated: list[str] = Field(default_factory=list)
    skipped: list[str] = Field(default_factory=list)


class PrepareResult(BaseModel):
    """Outcome of the synchronous preparation stages."""

    bootstrap_secret: str
    backup_secret: str
    klusterlet_config: str
    klusterlet_config_created: bool = False
    credentials: CredentialResult = Field(default_factory=CredentialResult)
    annotations: AnnotationResult = Field(default_factory=AnnotationResult)


class DetachmentOutcome(BaseModel):
    """Outcome of waiting for managed clusters to leave this hub."""

    status: DetachmentStatus
    clusters: list[str] = Field(default_factory=list)
    detached: list[str] = Field(default_factory=list)
    ticks: int = 0
    error: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.status is DetachmentStatus.DETACHED
