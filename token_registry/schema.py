"""
Token Registry - Schema Models

This module defines the Pydantic models for blockchain networks, the tokens
issued on them, and the payloads clients submit to create or update them.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


# Upper bound of an unsigned 64-bit integer
NAT64_MAX = 2 ** 64 - 1


class RegistryModel(BaseModel):
    """Base model: snake_case attributes, camelCase wire names."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        validate_assignment=True,
    )

    def to_wire(self) -> dict:
        """Serialize to a JSON-compatible dict using camelCase keys."""
        return self.model_dump(mode="json", by_alias=True)


class Blockchain(RegistryModel):
    """Blockchain network record."""

    id: str = Field(..., min_length=1, description="Registry-assigned identifier")
    name: str = Field(..., description="Network name, unique across blockchains")
    description: str = Field(...)
    created_at: datetime = Field(..., description="Creation instant")
    updated_at: Optional[datetime] = Field(None, description="Last update instant")


class Token(RegistryModel):
    """Token record issued on a registered blockchain."""

    id: str = Field(..., min_length=1, description="Registry-assigned identifier")
    name: str = Field(...)
    symbol: str = Field(...)
    decimals: int = Field(..., ge=0, le=NAT64_MAX, strict=True)
    total_supply: int = Field(..., gt=0, le=NAT64_MAX, strict=True)
    description: str = Field(...)
    contract_address: str = Field(..., description="Contract address (not unique)")
    blockchain_id: str = Field(..., description="Owning blockchain identifier")
    created_at: datetime = Field(...)
    updated_at: Optional[datetime] = Field(None)


class TokenPayload(RegistryModel):
    """Client-supplied token fields for create and update.

    String fields default to empty and numeric fields to ``None`` so that an
    incomplete payload still parses; completeness is checked by the registry
    service, which reports it as invalid input.
    """

    name: str = Field(default="")
    symbol: str = Field(default="")
    decimals: Optional[int] = Field(None, ge=0, le=NAT64_MAX, strict=True)
    total_supply: Optional[int] = Field(None, le=NAT64_MAX, strict=True)
    description: str = Field(default="")
    contract_address: str = Field(default="")
    blockchain_id: str = Field(default="")

    def is_complete(self) -> bool:
        """Check that every required field is present and non-empty."""
        return all((
            self.name,
            self.symbol,
            self.description,
            self.contract_address,
            self.blockchain_id,
            self.decimals is not None,
            self.total_supply is not None,
        ))
