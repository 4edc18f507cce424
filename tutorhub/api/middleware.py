"""Rate limiting and CORS for the gamification API"""
import logging
from fastapi import Request
from fastapi.middleware.cors import CORSMiddleware
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from tutorhub.config import CORS_ORIGINS

logger = logging.getLogger(__name__)

# Per-route limits; writes are tighter than reads
WRITE_LIMIT = "30/minute"
READ_LIMIT = "60/minute"


def client_key(request: Request) -> str:
    """Bucket requests by API key so clients behind one proxy do not share a quota"""
    auth = request.headers.get("authorization", "")
    scheme, _, token = auth.partition(" ")
    if scheme.lower() == "bearer" and token:
        return f"key:{token[:12]}"
    return get_remote_address(request)


limiter = Limiter(key_func=client_key)


def setup_cors(app):
    """Allow the marketplace front-end origins"""
    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["Authorization", "Content-Type"],
    )
    logger.info(f"CORS configured for origins: {CORS_ORIGINS}")


def setup_rate_limiting(app):
    """Attach the limiter and its 429 handler"""
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    logger.info(f"Rate limiting configured: writes {WRITE_LIMIT}, reads {READ_LIMIT}")
