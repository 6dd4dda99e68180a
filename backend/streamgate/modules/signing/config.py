"""Immutable URI signing configuration.

Built once at startup from Settings and passed to the issuer and verifier.
Validation happens here, at construction, so a missing secret stops the
service before any token can be requested.
"""

from dataclasses import dataclass, field
from typing import Optional

from streamgate.core.config import ConfigError, Settings, settings as default_settings

HMAC_ALGORITHMS = ("HS256", "HS384", "HS512")


@dataclass(frozen=True)
class TokenSigningConfig:
    """Signing secret, key identity and claim defaults."""
    primary_secret: Optional[str] = field(repr=False)
    algorithm: str = "HS256"
    primary_kid: str = "primary-key-2024"
    issuer: str = "CDN URI Authority"
    audience: str = "mycdn"
    expires_in: int = 3600
    renewal_duration: int = 300
    uri_signing_param: str = "URISigningPackage"

    def __post_init__(self):
        if not self.primary_secret or not self.primary_secret.strip():
            raise ConfigError("JWT_PRIMARY_SECRET not found in environment")
        if self.algorithm not in HMAC_ALGORITHMS:
            raise ConfigError(
                f"Unsupported signing algorithm {self.algorithm!r}. "
                f"Allowed: {', '.join(HMAC_ALGORITHMS)}"
            )
        if not self.primary_kid:
            raise ConfigError("JWT_PRIMARY_KID must not be empty")
        if self.expires_in <= 0:
            raise ConfigError(f"JWT_EXPIRES_IN must be positive, got {self.expires_in}")
        if self.renewal_duration < 0:
            raise ConfigError(
                f"JWT_RENEWAL_DURATION must not be negative, got {self.renewal_duration}"
            )

    @classmethod
    def from_settings(cls, config: Settings = default_settings) -> "TokenSigningConfig":
        """Build the signing configuration from application settings.

        Raises:
            ConfigError: If the secret is missing or a value is invalid
        """
        return cls(
            primary_secret=config.JWT_PRIMARY_SECRET,
            algorithm=config.JWT_ALGORITHM,
            primary_kid=config.JWT_PRIMARY_KID,
            issuer=config.JWT_ISSUER,
            audience=config.JWT_AUDIENCE,
            expires_in=config.JWT_EXPIRES_IN,
            renewal_duration=config.JWT_RENEWAL_DURATION,
            uri_signing_param=config.URI_SIGNING_PARAM,
        )
