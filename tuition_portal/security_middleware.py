"""
Row-level-security context and security headers.

The managed backend's policies read the caller's JWT claims from
``request.jwt.claims``; ``set_rls_context`` records them on the SQLAlchemy
session so the ``after_begin`` hook in ``database`` re-applies them to every
transaction of the request.
"""

import json
import logging
import os
from typing import Callable

from fastapi import Request, Response
from sqlalchemy import text
from sqlalchemy.orm import Session
from starlette.middleware.base import BaseHTTPMiddleware

from .database import RLS_CLAIMS_KEY

logger = logging.getLogger(__name__)

IS_PRODUCTION = os.getenv("ENVIRONMENT", "development").lower() == "production"


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """
    Middleware to add security headers to all API responses.
    """

    def __init__(self, app, exclude_paths=None):
        super().__init__(app)
        self.exclude_paths = exclude_paths or []

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)

        if any(request.url.path.startswith(path) for path in self.exclude_paths):
            return response

        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none'"
        response.headers["Cache-Control"] = "no-store"
        if IS_PRODUCTION:
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"

        return response


def set_rls_context(db: Session, claims: dict) -> None:
    """
    Set the RLS context for a database session.

    Args:
        db: SQLAlchemy database session
        claims: Verified JWT claims of the caller (at least ``sub`` and ``role``)
    """
    db.info[RLS_CLAIMS_KEY] = {k: v for k, v in claims.items() if k in ("sub", "role", "email", "aud")}
    if db.get_bind().dialect.name != "postgresql":
        return
    try:
        db.execute(
            text("SELECT set_config('request.jwt.claims', :claims, true)"),
            {"claims": json.dumps(db.info[RLS_CLAIMS_KEY])},
        )
        db.execute(text("SET LOCAL ROLE authenticated"))
        logger.debug(f"RLS context set for sub={claims.get('sub')}")
    except Exception as e:
        logger.error(f"Failed to set RLS context for sub={claims.get('sub')}: {e}")
        raise


def clear_rls_context(db: Session) -> None:
    """
    Clear the RLS context for a database session.

    Privileged service-side operations (tutor creation, bulk link
    assignment) run after this, under the service connection's own rights.
    """
    db.info.pop(RLS_CLAIMS_KEY, None)
    if db.get_bind().dialect.name != "postgresql":
        return
    try:
        db.execute(text("SELECT set_config('request.jwt.claims', '', true)"))
        db.execute(text("RESET ROLE"))
        logger.debug("RLS context cleared")
    except Exception as e:
        logger.error(f"Failed to clear RLS context: {e}")
        raise
