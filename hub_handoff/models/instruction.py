"""Migration instruction decoding."""

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ..core.exceptions import DecodeError
from .resources import KlusterletConfig, Secret


class MigrationInstruction(BaseModel):
    """Unit of work delivered to the source hub for one migration wave."""

    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="ignore")

    bootstrap_secret: Secret = Field(alias="bootstrapSecret")
    klusterlet_config: KlusterletConfig = Field(alias="klusterletConfig")
    managed_clusters: tuple[str, ...] = Field(default=(), alias="managedClusters")

    @field_validator("managed_clusters", mode="before")
    @classmethod
    def _ordered_unique(cls, value):
        if value is None:
            return ()
        if isinstance(value, str) or not isinstance(value, (list, tuple)):
            raise ValueError("managedClusters must be a list of cluster names")

        seen: set[str] = set()
        names: list[str] = []
        for name in value:
            if not isinstance(name, str) or not name.strip():
                raise ValueError(f"invalid managed cluster name: {name!r}")
            if name not in seen:
                seen.add(name)
                names.append(name)
        return tuple(names)


def decode_instruction(payload: bytes | str) -> MigrationInstruction:
    """Parse an inbound migration payload.

    Args:
        payload: JSON document with ``bootstrapSecret``, ``klusterletConfig`` and
            ``managedClusters``

    Returns:
        The decoded instruction

    Raises:
        DecodeError: If the payload is not a valid instruction
    """
    try:
        return MigrationInstruction.model_validate_json(payload)
    except ValidationError as e:
        raise DecodeError(f"Invalid migration instruction: {e}") from e
