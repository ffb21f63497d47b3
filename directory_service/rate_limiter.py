# directory_service/rate_limiter.py
import logging
import os
import time
from typing import Dict, List

from fastapi import HTTPException, Request, status

from . import config

logger = logging.getLogger(__name__)

# Sliding-window rate limiter: N login attempts / WINDOW seconds per IP+path
_request_log: Dict[str, List[float]] = {}


def reset_rate_limits() -> None:
    _request_log.clear()


def evict_expired(window_start: float) -> None:
    """Drop keys whose every attempt is older than the window."""
    for key in [k for k, ts in _request_log.items() if not ts or ts[-1] < window_start]:
        del _request_log[key]


def login_rate_limiter(request: Request):
    """
    Rate limit based on client IP + path.

    Used for the unauthenticated login endpoints:
    - POST /api/auth/student-login
    - POST /api/auth/admin-login
    """
    # Skip rate limiting completely in automated tests
    if os.getenv("TESTING") == "1":
        return
    client_ip = request.client.host if request.client else "unknown"
    key = f"{client_ip}:{request.url.path}"

    now = time.time()
    window_start = now - config.LOGIN_RATE_WINDOW_SECONDS

    evict_expired(window_start)

    # keep only timestamps inside the window
    timestamps = [ts for ts in _request_log.get(key, []) if ts >= window_start]

    if len(timestamps) >= config.LOGIN_RATE_LIMIT:
        logger.warning("Login rate limit hit for %s", key)
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail={"success": False, "message": "Too many login attempts, please slow down"},
        )

    timestamps.append(now)
    _request_log[key] = timestamps
