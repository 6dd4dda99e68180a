"""URI signing API router.

Issues playback tokens for the browser client and exposes the query
parameter name it must attach them under.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse

from streamgate.core.config import ConfigError
from streamgate.modules.signing.jwt import TokenIssuer
from streamgate.modules.signing.schemas import (
    ClientConfigResponse,
    TokenOptions,
    TokenResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["signing"])


def get_token_issuer(request: Request) -> TokenIssuer:
    """Dependency returning the issuer built at startup."""
    return request.app.state.token_issuer


@router.get("/config", response_model=ClientConfigResponse)
async def get_client_config(request: Request) -> ClientConfigResponse:
    """Return configuration values needed by the frontend."""
    return ClientConfigResponse(uriSigningParam=request.app.state.settings.URI_SIGNING_PARAM)


@router.get("/token/{asset_id}", response_model=TokenResponse)
async def generate_token(
    asset_id: str,
    expires_in: Optional[int] = Query(None, alias="expiresIn", gt=0),
    renewal_duration: Optional[int] = Query(None, alias="renewalDuration", ge=0),
    hostname: Optional[str] = Query(None),
    issuer: TokenIssuer = Depends(get_token_issuer),
):
    """Generate a signed playback token for an asset.

    Returns only the token string.
    """
    options = TokenOptions(
        expires_in=expires_in,
        renewal_duration=renewal_duration,
        hostname=hostname,
    )
    try:
        token = issuer.issue(asset_id, options)
    except ConfigError as e:
        logger.error("Error generating token: %s", e)
        return JSONResponse(status_code=500, content={"error": "Failed to generate token"})

    return TokenResponse(token=token)
