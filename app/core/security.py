from passlib.context import CryptContext
from jose import jwt, JWTError, ExpiredSignatureError
from datetime import datetime, timedelta, timezone
from dataclasses import dataclass
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from app.core.config import (
    ACCESS_TOKEN_SECRET, REFRESH_TOKEN_SECRET, ALGORITHM,
    ACCESS_TOKEN_EXPIRE_MINUTES, REFRESH_TOKEN_EXPIRE_DAYS
)
from app.models.user import UserRole
import logging
import hashlib
import hmac
import uuid

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
security = HTTPBearer(auto_error=False)

# Verified against when the email is unknown so both login failures cost one bcrypt round
_DUMMY_PASSWORD_HASH = pwd_context.hash("timing-equaliser")

class TokenError(Exception):
    """Raised when a token is tampered, expired, malformed or of the wrong kind."""

    def __init__(self, message: str = "Invalid or expired token"):
        super().__init__(message)
        self.message = message

@dataclass(frozen=True)
class CurrentUser:
    id: int
    email: str
    role: UserRole

def get_password_hash(password: str):
    return pwd_context.hash(password)

def verify_password(plain_password: str, hashed_password: str | None):
    if not hashed_password:
        pwd_context.verify(plain_password, _DUMMY_PASSWORD_HASH)
        return False
    return pwd_context.verify(plain_password, hashed_password)

def _role_value(role) -> str:
    return getattr(role, "value", role)

def generate_access_token(user, expires_delta: timedelta | None = None) -> str:
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode = {
        "id": user.id,
        "email": user.email,
        "role": _role_value(user.role),
        "type": "access",
        "iat": now,
        "exp": expire,
    }
    return jwt.encode(to_encode, ACCESS_TOKEN_SECRET, algorithm=ALGORITHM)

def generate_refresh_token(user, family: str, expires_delta: timedelta | None = None) -> tuple[str, str]:
    """Sign a refresh token for ``user`` in ``family``.

    Returns the encoded token and its freshly generated jti; only a hash of the
    jti is ever persisted.
    """
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(days=REFRESH_TOKEN_EXPIRE_DAYS))
    jti = uuid.uuid4().hex
    to_encode = {
        "id": user.id,
        "family": family,
        "jti": jti,
        "type": "refresh",
        "iat": now,
        "exp": expire,
    }
    return jwt.encode(to_encode, REFRESH_TOKEN_SECRET, algorithm=ALGORITHM), jti

def _decode(token: str, secret: str, expected_type: str, required: tuple[str, ...]) -> dict:
    if not token:
        raise TokenError()
    try:
        payload = jwt.decode(token, secret, algorithms=[ALGORITHM])
    except ExpiredSignatureError:
        raise TokenError("Token has expired")
    except JWTError as e:
        logger.debug(f"JWT error: {type(e).__name__}")
        raise TokenError()

    if payload.get("type") != expected_type or any(payload.get(claim) is None for claim in required):
        raise TokenError()
    return payload

def verify_access_token(token: str) -> dict:
    return _decode(token, ACCESS_TOKEN_SECRET, "access", ("id", "role"))

def verify_refresh_token(token: str) -> dict:
    return _decode(token, REFRESH_TOKEN_SECRET, "refresh", ("id", "family", "jti"))

def hash_token_id(jti: str) -> str:
    return hashlib.sha256(jti.encode()).hexdigest()

def token_id_matches(jti: str, stored_hash: str | None) -> bool:
    if not stored_hash:
        return False
    return hmac.compare_digest(hash_token_id(jti), stored_hash)

def get_current_user(credentials: HTTPAuthorizationCredentials | None = Depends(security)) -> CurrentUser:
    if credentials is None or credentials.scheme.lower() != "bearer" or not credentials.credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        payload = verify_access_token(credentials.credentials)
        return CurrentUser(id=int(payload["id"]), email=payload.get("email"), role=UserRole(payload["role"]))
    except (TokenError, ValueError):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )

def require_roles(*roles: UserRole):
    allowed = set(roles)

    def checker(current_user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        if current_user.role not in allowed:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Access forbidden. Your role '{current_user.role.value}' does not have sufficient privileges.",
            )
        return current_user

    return checker
