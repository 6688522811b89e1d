"""API key authentication for FastAPI endpoints."""

import secrets
from typing import Optional

from fastapi import Depends, Header, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from tierprice.config import TierPriceConfig
from tierprice.dependencies import get_app_config

bearer_scheme = HTTPBearer(auto_error=False)


def _matches_any(candidate: str, keys: set[str]) -> bool:
    return any(secrets.compare_digest(candidate, key) for key in keys)


def verify_api_key(
    x_api_key: Optional[str] = Header(default=None),
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    config: TierPriceConfig = Depends(get_app_config),
) -> str:
    """Accept ``X-API-Key`` or ``Authorization: Bearer <key>``."""
    if config.dev_bypass_api_key:
        return "dev-bypass"

    keys = config.get_api_keys()
    if not keys:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="API keys are not configured",
        )

    candidate = x_api_key or (credentials.credentials if credentials else None)
    if not candidate or not _matches_any(candidate, keys):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing API key",
        )
    return candidate
