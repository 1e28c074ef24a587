"""Core exceptions for hub handoff operations."""


class HandoffError(Exception):
    """Base exception for hub handoff operations."""


class DecodeError(HandoffError):
    """Migration instruction payload could not be decoded."""


class ConfigurationError(HandoffError):
    """Configuration validation or loading failed."""


class StoreError(HandoffError):
    """Resource store operation failed."""


class NotFoundError(StoreError):
    """Requested resource does not exist."""


class ManagedClusterNotFoundError(NotFoundError):
    """Managed cluster named by the instruction does not exist on this hub."""


class AlreadyExistsError(StoreError):
    """Resource being created already exists."""


class ConflictError(StoreError):
    """Resource was modified since it was read."""


class DetachmentError(HandoffError):
    """Waiting for managed clusters to detach did not complete."""


class DetachmentCancelledError(DetachmentError):
    """Detachment wait was stopped by the caller."""
