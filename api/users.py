from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.db.database import get_db
from app.schemas.user import UserProfile, UserUpdate
from app.services import user_service
from app.core.security import get_current_user, CurrentUser

router = APIRouter(prefix="/users", tags=["Users"])

@router.get("/{user_id}", response_model=UserProfile)
def get_user(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user)
):
    return UserProfile.from_user(user_service.get_visible_user(db, current_user, user_id))

@router.put("/{user_id}", response_model=UserProfile)
def update_user(
    user_id: int,
    user_data: UserUpdate,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user)
):
    return UserProfile.from_user(user_service.update_user(db, current_user, user_id, user_data))
