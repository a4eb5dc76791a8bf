from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.db.database import get_db
from app.models.user import UserRole
from app.schemas.stats import AdminStatsResponse
from app.services import stats_service
from app.core.security import require_roles, CurrentUser

router = APIRouter(prefix="/stats", tags=["Stats"])

@router.get("/admin", response_model=AdminStatsResponse)
def admin_stats(
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(require_roles(UserRole.admin))
):
    return stats_service.get_admin_stats(db)
