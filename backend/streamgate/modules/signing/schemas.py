"""Pydantic schemas for URI signing tokens."""

from typing import Optional

from pydantic import BaseModel, Field


class TokenOptions(BaseModel):
    """Per-request overrides for token issuance.

    Unset fields fall back to the signing configuration.
    """
    expires_in: Optional[int] = Field(None, gt=0, description="Token lifetime in seconds")
    renewal_duration: Optional[int] = Field(None, ge=0, description="Renewal window in seconds")
    hostname: Optional[str] = Field(None, description="Host pattern for the path constraint")
    key_id: Optional[str] = Field(None, description="Key identifier for the token header")
    issuer: Optional[str] = None
    audience: Optional[str] = None


class TokenClaims(BaseModel):
    """URI signing claim set.

    Standard JWT claims plus the CDNI claims read by the edge:
    cdniv (interface version), cdniuc (container URI constraint),
    cdnistt (signed token transport, 1 enables renewal) and
    cdniets (renewal duration in seconds).
    """
    iss: str
    sub: str
    aud: str
    iat: int
    exp: int
    nbf: int
    cdniv: int = 1
    cdniuc: str
    cdnistt: int = 1
    cdniets: int

    @property
    def path_constraint(self) -> str:
        return self.cdniuc

    @property
    def renewal_enabled(self) -> bool:
        return self.cdnistt == 1

    @property
    def renewal_duration(self) -> int:
        return self.cdniets


class TokenResponse(BaseModel):
    """Token endpoint response."""
    token: str


class ClientConfigResponse(BaseModel):
    """Configuration values needed by the playback client."""
    uriSigningParam: str
