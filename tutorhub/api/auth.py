"""Bearer API-key authentication for the gamification API

Keys come from the comma-separated API_KEYS variable and are re-read on
every request, so rotating a key only needs an environment change.
"""
import hmac
import logging
import os
from fastapi import HTTPException, Security, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer()


def get_api_keys() -> list[str]:
    """Currently configured API keys (empty when unset)"""
    raw = os.getenv("API_KEYS", "")
    keys = [key.strip() for key in raw.split(",") if key.strip()]
    if not keys:
        logger.warning("API_KEYS is empty; gamification API requests will be refused")
    return keys


def is_known_key(candidate: str, keys: list[str]) -> bool:
    # Constant-time comparison against every configured key
    return any(hmac.compare_digest(candidate.encode(), key.encode()) for key in keys)


async def verify_api_key(
    credentials: HTTPAuthorizationCredentials = Security(bearer_scheme)
) -> str:
    """
    FastAPI dependency guarding every /api/v1 route

    Raises:
        HTTPException: 503 when no keys are configured, 401 for an unknown key
    """
    keys = get_api_keys()
    if not keys:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="API authentication not configured"
        )

    api_key = credentials.credentials
    if not is_known_key(api_key, keys):
        logger.warning(f"Rejected request with unknown API key {api_key[:4]}...")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid API key"
        )

    return api_key
