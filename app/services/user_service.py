# ------------------------------------------
# User service functions
# - get_user()    : Loads a user or raises 404
# - update_user() : Partial profile update; a password change revokes the refresh session
# Role and manager changes are reserved to admins
# ------------------------------------------

from fastapi import HTTPException, status
from sqlalchemy.orm import Session
from app.core.security import CurrentUser, get_password_hash
from app.models.user import User, UserRole
from app.schemas.user import UserUpdate
from app.services.auth_service import revoke_sessions_for_password_change
from app.services.policies import policy_for, Action
import logging

logger = logging.getLogger(__name__)

def get_user(db: Session, user_id: int) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return user

def get_visible_user(db: Session, current_user: CurrentUser, user_id: int) -> User:
    if not policy_for(current_user).can_access(db, user_id, Action.read):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden - cannot access this user")
    return get_user(db, user_id)

def update_user(db: Session, current_user: CurrentUser, user_id: int, data: UserUpdate) -> User:
    is_admin = current_user.role == UserRole.admin
    if not is_admin and current_user.id != user_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="You can only update your own profile")

    user = get_user(db, user_id)
    changes = data.model_dump(exclude_unset=True)

    if not is_admin and ("role" in changes or "id_manager" in changes):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Only admins can change roles or managers")

    if "email" in changes and changes["email"] != user.email:
        if db.query(User).filter(User.email == changes["email"], User.id != user.id).first():
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email already registered")
        user.email = changes["email"]

    if changes.get("id_manager") is not None:
        manager = db.query(User).filter(User.id == changes["id_manager"]).first()
        if not manager or manager.role != UserRole.manager:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail='Only users with the role "manager" can be assigned as a manager.'
            )

    for field, attr in (("name", "name"), ("surname", "surname"), ("mobileNumber", "mobile_number"),
                        ("role", "role"), ("id_manager", "id_manager")):
        if field in changes and (changes[field] is not None or field in ("mobileNumber", "id_manager")):
            setattr(user, attr, changes[field])

    if changes.get("password"):
        user.password_hash = get_password_hash(changes["password"])
        revoke_sessions_for_password_change(user)

    db.commit()
    db.refresh(user)
    logger.info(f"User {user.id} updated by user {current_user.id}")
    return user
