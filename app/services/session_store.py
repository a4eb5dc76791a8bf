# ------------------------------------------
# Refresh session store
# - One live refresh chain per user: (refresh_token_hash, refresh_token_family)
# - start()  : stores a new family with the hash of its first jti
# - rotate() : compare-and-swap of the jti hash within the same family
# - revoke() : clears the pair (logout, reuse detected, password change)
# - load()   : fresh read of the pair, never from the session cache
# Every write is a single UPDATE keyed by user id
# ------------------------------------------

from dataclasses import dataclass
from sqlalchemy import update, select
from sqlalchemy.orm import Session
from app.models.user import User
from app.core.security import hash_token_id
import uuid

@dataclass(frozen=True)
class RefreshSession:
    token_hash: str | None
    family: str | None

    @property
    def active(self) -> bool:
        return self.token_hash is not None

def load(db: Session, user_id: int) -> RefreshSession | None:
    row = db.execute(
        select(User.refresh_token_hash, User.refresh_token_family).where(User.id == user_id)
    ).first()
    if row is None:
        return None
    return RefreshSession(token_hash=row.refresh_token_hash, family=row.refresh_token_family)

def start(db: Session, user_id: int, family: str, jti: str) -> None:
    db.execute(
        update(User)
        .where(User.id == user_id)
        .values(refresh_token_hash=hash_token_id(jti), refresh_token_family=family)
        .execution_options(synchronize_session=False)
    )
    db.commit()

def new_family() -> str:
    return str(uuid.uuid4())

def rotate(db: Session, user_id: int, family: str, old_jti: str, new_jti: str) -> bool:
    result = db.execute(
        update(User)
        .where(
            User.id == user_id,
            User.refresh_token_family == family,
            User.refresh_token_hash == hash_token_id(old_jti),
        )
        .values(refresh_token_hash=hash_token_id(new_jti))
        .execution_options(synchronize_session=False)
    )
    db.commit()
    return result.rowcount == 1

def revoke(db: Session, user_id: int) -> None:
    db.execute(
        update(User)
        .where(User.id == user_id)
        .values(refresh_token_hash=None, refresh_token_family=None)
        .execution_options(synchronize_session=False)
    )
    db.commit()
