"""URI signing token issuance and verification.

Tokens authorize fetches under one asset's path prefix for a bounded time
window. They are never persisted; any relying party holding the shared
secret can verify them. There is no revocation: a token stays valid until
it expires or the signing key is rotated.
"""

import logging
import re
import time
from typing import Callable, Optional
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from jose import ExpiredSignatureError, JWTError, jwt
from pydantic import ValidationError

from streamgate.core.config import ConfigError, Settings, settings as default_settings
from streamgate.core.metrics import TOKENS_ISSUED_TOTAL, TOKEN_VERIFICATIONS_TOTAL
from streamgate.modules.signing.config import TokenSigningConfig
from streamgate.modules.signing.schemas import TokenClaims, TokenOptions

logger = logging.getLogger(__name__)

ANY_HOSTNAME = "[^/]*"
CONSTRAINT_PREFIX = "regex:"
SEGMENT_EXTENSIONS = ("ts", "m3u8", "mpd", "m4s")
CDN_INTERFACE_VERSION = 1


class UriSigningError(Exception):
    """Base exception for token verification failures."""
    pass


class InvalidTokenError(UriSigningError):
    """Raised when a token is malformed, forged or has wrong claims."""
    pass


class ExpiredTokenError(UriSigningError):
    """Raised when a token's expiry has elapsed."""
    pass


class KeyMismatchError(UriSigningError):
    """Raised when a token names a key other than the expected one."""
    pass


def build_path_constraint(asset_id: str, hostname: Optional[str] = None) -> str:
    """Build the container URI constraint for an asset.

    The asset id is regex-escaped so the pattern matches exactly the
    `videos/<asset_id>/` directory written by packaging. The hostname is a
    pattern itself and is inserted as given.

    Args:
        asset_id: Asset title, as used in the storage path
        hostname: Host pattern (defaults to any host)

    Returns:
        Constraint string, e.g. regex:https?://[^/]*/videos/demo/.*\\.(ts|m3u8|mpd|m4s)
    """
    host = hostname or ANY_HOSTNAME
    extensions = "|".join(SEGMENT_EXTENSIONS)
    return f"{CONSTRAINT_PREFIX}https?://{host}/videos/{re.escape(asset_id)}/.*\\.({extensions})"


def path_constraint_matches(constraint: str, url: str) -> bool:
    """Check a request URL against a container URI constraint.

    Args:
        constraint: The cdniuc claim value
        url: Absolute request URL

    Returns:
        True if the whole URL matches the constraint

    Raises:
        ValueError: If the constraint is not a regex constraint
    """
    if not constraint.startswith(CONSTRAINT_PREFIX):
        raise ValueError(f"Unsupported path constraint: {constraint!r}")
    pattern = constraint[len(CONSTRAINT_PREFIX):]
    return re.fullmatch(pattern, url) is not None


def extract_asset_id(path: str) -> str:
    """Extract the asset id from a manifest or segment path.

    Expected format: /videos/<asset>/index.mpd, else the second-to-last
    path segment is taken.

    Raises:
        ValueError: If no asset id can be found
    """
    parts = [p for p in urlsplit(path).path.split("/") if p]

    asset_id = None
    if len(parts) >= 2:
        if "videos" in parts and parts.index("videos") + 1 < len(parts):
            asset_id = parts[parts.index("videos") + 1]
        else:
            asset_id = parts[-2]

    if not asset_id:
        raise ValueError(f"Cannot extract video name from path: {path}")
    return asset_id


def sign_url(url: str, token: str, param_name: str = "URISigningPackage") -> str:
    """Attach a token to a URL as a query parameter.

    Existing query parameters are kept; a previous token is replaced.
    """
    parts = urlsplit(url)
    query = [(k, v) for k, v in parse_qsl(parts.query, keep_blank_values=True) if k != param_name]
    query.append((param_name, token))
    return urlunsplit(parts._replace(query=urlencode(query)))


class TokenIssuer:
    """Builds and signs URI signing tokens."""

    def __init__(
        self,
        config: TokenSigningConfig,
        clock: Callable[[], float] = time.time,
    ):
        """Initialize issuer.

        Args:
            config: Validated signing configuration
            clock: Source of the current UNIX time
        """
        self.config = config
        self.clock = clock

    @classmethod
    def from_settings(cls, config: Settings = default_settings) -> "TokenIssuer":
        """Create an issuer from application settings.

        Raises:
            ConfigError: If no signing secret is configured
        """
        return cls(TokenSigningConfig.from_settings(config))

    def build_claims(self, asset_id: str, options: Optional[TokenOptions] = None) -> TokenClaims:
        """Build the claim set for an asset.

        Args:
            asset_id: Asset title
            options: Per-request overrides

        Returns:
            TokenClaims ready for signing
        """
        options = options or TokenOptions()
        expires_in = options.expires_in or self.config.expires_in
        renewal_duration = (
            options.renewal_duration
            if options.renewal_duration is not None
            else self.config.renewal_duration
        )

        now = int(self.clock())
        return TokenClaims(
            iss=options.issuer or self.config.issuer,
            sub=f"manifest:{asset_id}",
            aud=options.audience or self.config.audience,
            iat=now,
            exp=now + expires_in,
            nbf=now,
            cdniv=CDN_INTERFACE_VERSION,
            cdniuc=build_path_constraint(asset_id, options.hostname),
            cdnistt=1,
            cdniets=renewal_duration,
        )

    def issue(self, asset_id: str, options: Optional[TokenOptions] = None) -> str:
        """Issue a signed token for an asset.

        Args:
            asset_id: Asset title
            options: Per-request overrides

        Returns:
            Compact JWT string

        Raises:
            ConfigError: If no signing secret is configured
        """
        if not self.config.primary_secret:
            raise ConfigError("JWT_PRIMARY_SECRET not found in environment")
        if not asset_id:
            raise ValueError("Asset id must not be empty")

        options = options or TokenOptions()
        claims = self.build_claims(asset_id, options)

        token = jwt.encode(
            claims.model_dump(),
            self.config.primary_secret,
            algorithm=self.config.algorithm,
            headers={
                "kid": options.key_id or self.config.primary_kid,
                "typ": "JWT",
            },
        )

        TOKENS_ISSUED_TOTAL.inc()
        logger.debug("Issued token for %s expiring at %d", claims.sub, claims.exp)
        return token

    def issue_for_path(self, path: str, options: Optional[TokenOptions] = None) -> str:
        """Issue a token for the asset a manifest or segment path belongs to.

        Raises:
            ValueError: If the path names no asset
            ConfigError: If no signing secret is configured
        """
        return self.issue(extract_asset_id(path), options)


class TokenVerifier:
    """Validates tokens issued with the shared secret."""

    def __init__(self, config: TokenSigningConfig):
        self.config = config

    @classmethod
    def from_settings(cls, config: Settings = default_settings) -> "TokenVerifier":
        return cls(TokenSigningConfig.from_settings(config))

    def verify(
        self,
        token: str,
        issuer: Optional[str] = None,
        key_id: Optional[str] = None,
    ) -> TokenClaims:
        """Verify a token and return its claims.

        The header key id is checked before any cryptographic work; then the
        signature, expiry, not-before, issuer and audience are validated.

        Args:
            token: Compact JWT string
            issuer: Expected issuer (defaults to configuration)
            key_id: Key id to check instead of the header's (must still be
                the primary key id)

        Returns:
            Decoded TokenClaims

        Raises:
            KeyMismatchError: If the key id is not the primary key id
            ExpiredTokenError: If the token has expired
            InvalidTokenError: If the token is malformed, forged or has
                the wrong issuer or audience
        """
        try:
            header = jwt.get_unverified_header(token)
        except JWTError as e:
            TOKEN_VERIFICATIONS_TOTAL.labels(outcome="invalid").inc()
            raise InvalidTokenError("Invalid token format") from e

        kid = key_id or header.get("kid")
        if kid != self.config.primary_kid:
            TOKEN_VERIFICATIONS_TOTAL.labels(outcome="key_mismatch").inc()
            raise KeyMismatchError(
                f"Token signed with unexpected key ID: {kid} "
                f"(expected: {self.config.primary_kid})"
            )

        try:
            payload = jwt.decode(
                token,
                self.config.primary_secret,
                algorithms=[self.config.algorithm],
                issuer=issuer or self.config.issuer,
                audience=self.config.audience,
                options={"require_exp": True, "require_iss": True, "require_aud": True},
            )
        except ExpiredSignatureError as e:
            TOKEN_VERIFICATIONS_TOTAL.labels(outcome="expired").inc()
            raise ExpiredTokenError("Token has expired") from e
        except JWTError as e:
            TOKEN_VERIFICATIONS_TOTAL.labels(outcome="invalid").inc()
            raise InvalidTokenError(f"Token verification failed: {e}") from e

        try:
            claims = TokenClaims.model_validate(payload)
        except ValidationError as e:
            TOKEN_VERIFICATIONS_TOTAL.labels(outcome="invalid").inc()
            raise InvalidTokenError("Token is missing URI signing claims") from e

        TOKEN_VERIFICATIONS_TOTAL.labels(outcome="valid").inc()
        return claims
