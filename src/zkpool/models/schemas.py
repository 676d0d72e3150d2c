"""Pydantic wire models for the note transport format and leaf snapshots."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

HEX32_PATTERN = r"^[0-9a-fA-F]{64}$"

NOTE_FORMAT_VERSION = 1


class NotePayload(BaseModel):
    """JSON body of an encoded deposit note (format version 1)."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True, frozen=True)

    version: int = Field(..., description="Note format version")
    hash: str = Field(..., min_length=1, description="Hasher used for the commitments")
    secret: str = Field(..., pattern=HEX32_PATTERN)
    nullifier_secret: str = Field(..., alias="nullifierSecret", pattern=HEX32_PATTERN)
    precommitment: str = Field(..., pattern=HEX32_PATTERN)
    amount: str = Field(..., pattern=r"^[0-9]{1,20}$", description="Amount as decimal string")
    commitment: str = Field(..., pattern=HEX32_PATTERN)
    settlement_ref: Optional[str] = Field(..., alias="settlementRef")
    timestamp: str = Field(..., description="Creation time, ISO-8601 with offset")

    @field_validator("timestamp")
    @classmethod
    def _parseable_timestamp(cls, value: str) -> str:
        parsed = datetime.fromisoformat(value)
        if parsed.tzinfo is None:
            raise ValueError("timestamp must carry a UTC offset")
        return value


class LeafSnapshot(BaseModel):
    """Ordered list of hex-encoded tree leaves, as read from the ledger."""

    model_config = ConfigDict(extra="forbid")

    leaves: List[str] = Field(default_factory=list)

    @field_validator("leaves")
    @classmethod
    def _hex_leaves(cls, value: List[str]) -> List[str]:
        for i, leaf in enumerate(value):
            stripped = leaf[2:] if leaf.startswith("0x") else leaf
            if len(stripped) != 64:
                raise ValueError(f"leaf {i} must be 32 bytes of hex")
            bytes.fromhex(stripped)
        return value

    def to_bytes(self) -> List[bytes]:
        """Decode leaves to 32-byte values."""
        return [bytes.fromhex(leaf[2:] if leaf.startswith("0x") else leaf) for leaf in self.leaves]
