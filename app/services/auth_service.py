# ------------------------------------------
# Authentication service functions
# - login()            : Verifies credentials, opens a new refresh family
# - refresh_session()  : Rotates the refresh token, detects reuse of consumed tokens
# - logout()           : Best-effort revocation of the caller's refresh session
# - revoke_sessions_for_password_change() : Kills the session when credentials change
# Works with SQLAlchemy DB session, security utilities and the session store
# ------------------------------------------

from dataclasses import dataclass
from fastapi import HTTPException, status
from sqlalchemy.orm import Session
from app.models.user import User
from app.core.security import (
    verify_password, generate_access_token, generate_refresh_token,
    verify_refresh_token, token_id_matches, TokenError
)
from app.services import session_store
import logging

logger = logging.getLogger(__name__)

REUSE_DETECTED_MESSAGE = "Réutilisation de token détectée"

@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str

def login(db: Session, email: str, password: str) -> TokenPair:
    user = db.query(User).filter(User.email == email).first()
    if not verify_password(password, user.password_hash if user else None):
        logger.warning("Failed login attempt")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
        )

    family = session_store.new_family()
    refresh_token, jti = generate_refresh_token(user, family)
    session_store.start(db, user.id, family, jti)

    logger.info(f"User {user.id} logged in, new refresh family {family}")
    return TokenPair(access_token=generate_access_token(user), refresh_token=refresh_token)

def _reuse_detected(db: Session, user_id: int, family: str, reason: str) -> HTTPException:
    session_store.revoke(db, user_id)
    logger.warning(f"Refresh token reuse detected for user {user_id} (family {family}): {reason}; session revoked")
    return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=REUSE_DETECTED_MESSAGE)

def refresh_session(db: Session, token: str) -> TokenPair:
    try:
        payload = verify_refresh_token(token)
    except TokenError as e:
        logger.info(f"Rejected refresh token: {e.message}")
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid refresh token")

    user_id = int(payload["id"])
    user = db.query(User).filter(User.id == user_id).populate_existing().first()
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    stored = session_store.load(db, user_id)
    if stored is None or not stored.active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Token revoked")

    if stored.family != payload["family"]:
        raise _reuse_detected(db, user_id, payload["family"], "family mismatch")

    if not token_id_matches(payload["jti"], stored.token_hash):
        raise _reuse_detected(db, user_id, stored.family, "superseded token replayed")

    new_refresh_token, new_jti = generate_refresh_token(user, stored.family)
    if not session_store.rotate(db, user_id, stored.family, payload["jti"], new_jti):
        raise _reuse_detected(db, user_id, stored.family, "concurrent rotation")

    logger.info(f"Rotated refresh token for user {user_id} (family {stored.family})")
    return TokenPair(access_token=generate_access_token(user), refresh_token=new_refresh_token)

def logout(db: Session, token: str | None) -> None:
    if not token:
        return
    try:
        payload = verify_refresh_token(token)
    except TokenError as e:
        logger.info(f"Logout with unusable refresh token ignored: {e.message}")
        return

    user_id = int(payload["id"])
    try:
        if session_store.load(db, user_id) is not None:
            session_store.revoke(db, user_id)
            logger.info(f"User {user_id} logged out, refresh session cleared")
    except Exception:
        db.rollback()
        logger.exception(f"Could not clear refresh session for user {user_id} during logout")

def revoke_sessions_for_password_change(user: User) -> None:
    """Clear the refresh session on ``user``; committed together with the new password."""
    user.refresh_token_hash = None
    user.refresh_token_family = None
    logger.info(f"Password changed for user {user.id}, refresh session revoked")
