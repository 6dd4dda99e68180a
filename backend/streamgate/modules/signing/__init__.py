"""URI signing module.

Issues short-lived, path-constrained playback tokens for packaged assets and
verifies them for relying parties holding the shared secret.
"""

from streamgate.modules.signing.config import TokenSigningConfig
from streamgate.modules.signing.jwt import (
    ExpiredTokenError,
    InvalidTokenError,
    KeyMismatchError,
    TokenIssuer,
    TokenVerifier,
    UriSigningError,
    build_path_constraint,
    extract_asset_id,
    path_constraint_matches,
    sign_url,
)
from streamgate.modules.signing.schemas import TokenClaims, TokenOptions

__all__ = [
    # Config
    "TokenSigningConfig",
    # Issuance and verification
    "TokenIssuer",
    "TokenVerifier",
    "build_path_constraint",
    "extract_asset_id",
    "path_constraint_matches",
    "sign_url",
    # Errors
    "UriSigningError",
    "InvalidTokenError",
    "ExpiredTokenError",
    "KeyMismatchError",
    # Schemas
    "TokenClaims",
    "TokenOptions",
]
