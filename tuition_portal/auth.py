import logging
from typing import Optional

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import ExpiredSignatureError, JWTError
from jose import jwt as jose_jwt
from sqlalchemy.orm import Session

from .config import SUPABASE_JWT_AUDIENCE, SUPABASE_JWT_SECRET
from .database import get_db
from .enums import UserRole
from .models import Profile
from .security_middleware import set_rls_context

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)

ALGORITHM = "HS256"


def verify_access_token(token: str) -> dict:
    """
    Verify a backend-issued access token (HS256, audience "authenticated").

    Raises 401 for malformed, tampered or expired tokens; expired tokens carry
    an X-Token-Expired header so the client knows to re-login.
    """
    try:
        return jose_jwt.decode(
            token,
            SUPABASE_JWT_SECRET,
            algorithms=[ALGORITHM],
            audience=SUPABASE_JWT_AUDIENCE,
        )
    except ExpiredSignatureError as e:
        logger.info("ℹ️ Expired access token presented")
        raise HTTPException(
            status_code=401,
            detail="Session expired. Please log in again.",
            headers={"X-Token-Expired": "true"},
        ) from e
    except JWTError as e:
        logger.warning(f"⚠️ Token verification failed: {e}")
        raise HTTPException(status_code=401, detail="Invalid token") from e


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db),
) -> Profile:
    """Resolve the caller's profile from the bearer token"""
    if not credentials:
        raise HTTPException(
            status_code=401,
            detail="Not authenticated. Please provide a valid Bearer token in the Authorization header.",
        )

    token = credentials.credentials
    if len(token.split(".")) != 3:
        logger.warning(f"⚠️ Malformed token received, length: {len(token)}")
        raise HTTPException(status_code=401, detail="Invalid token format. Expected a valid JWT token.")

    claims = verify_access_token(token)
    user_id = claims.get("sub")
    if not user_id:
        logger.error(f"❌ Token missing sub claim. Available claims: {list(claims.keys())}")
        raise HTTPException(status_code=401, detail="Invalid token claims")

    profile = db.query(Profile).filter(Profile.id == user_id).first()
    if not profile:
        logger.warning(f"⚠️ No profile for authenticated user {user_id}")
        raise HTTPException(status_code=403, detail="Profile not found for this account")

    # Scope every later query on this session to the caller
    set_rls_context(db, claims)

    logger.debug(f"✅ User authenticated: {profile.id} ({profile.role})")
    return profile


def role_of(user: Profile) -> UserRole:
    try:
        return UserRole(user.role)
    except ValueError:
        return UserRole.STUDENT


async def require_admin(user: Profile = Depends(get_current_user)) -> Profile:
    """Only ADMIN profiles pass"""
    if role_of(user) != UserRole.ADMIN:
        logger.warning(f"⚠️ Non-admin {user.id} attempted an admin action")
        raise HTTPException(status_code=403, detail="Forbidden: Admin access required")
    return user


async def require_staff(user: Profile = Depends(get_current_user)) -> Profile:
    """ADMIN or TUTOR profiles pass"""
    if role_of(user) not in (UserRole.ADMIN, UserRole.TUTOR):
        raise HTTPException(status_code=403, detail="Forbidden: Tutor or admin access required")
    return user


def acting_student_id(user: Profile) -> str:
    """The student a request acts for: parents act for their linked student"""
    role = role_of(user)
    if role == UserRole.PARENT:
        if not user.linked_user_id:
            raise HTTPException(status_code=400, detail="Student identification failed.")
        return user.linked_user_id
    return user.id
