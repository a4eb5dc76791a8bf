from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import Optional

from app.db.database import get_db
from app.schemas.stats import TeamStatsResponse
from app.services import stats_service
from app.core.security import get_current_user, CurrentUser
from app.core.time_utils import parse_date_bound

router = APIRouter(prefix="/teams", tags=["Teams"])

@router.get("/{team_id}/stats", response_model=TeamStatsResponse)
def team_stats(
    team_id: int,
    start_date: Optional[str] = Query(None),
    end_date: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user)
):
    result = stats_service.get_team_stats(
        db, current_user, team_id,
        parse_date_bound(start_date),
        parse_date_bound(end_date, end_of_day=True),
    )
    result["period"] = {"start": start_date, "end": end_date}
    return result
