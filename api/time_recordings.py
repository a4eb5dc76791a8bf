"""
Time Recording API Routes
=====================================
Clock-in/clock-out endpoints with role-scoped visibility.

Features:
- List and read recordings (employee: own, manager: own + team, admin: all)
- Create recordings with strict Arrival/Departure alternation
- Update and delete recordings (managers of the owner's team and admins)
- Per-user work-hour statistics
- A team's recordings for one day

Authentication required for all endpoints.
"""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import List, Optional
import logging

from app.db.database import get_db
from app.models.user import UserRole, RecordingType
from app.schemas.time_recording import TimeRecordingCreate, TimeRecordingUpdate, TimeRecordingResponse
from app.schemas.stats import RecordingStatsResponse
from app.schemas.user import MessageResponse
from app.services import time_recording_service, stats_service
from app.core.security import get_current_user, require_roles, CurrentUser
from app.core.time_utils import parse_date_bound, now_utc, to_utc_naive

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/timerecordings", tags=["Time Recordings"])

def _to_response(recordings) -> List[TimeRecordingResponse]:
    return [TimeRecordingResponse.model_validate(r) for r in recordings]

@router.get("", response_model=List[TimeRecordingResponse])
def list_time_recordings(
    id_user: Optional[int] = Query(None, description="Only recordings of this user"),
    start_date: Optional[str] = Query(None, description="Inclusive lower bound (YYYY-MM-DD or ISO)"),
    end_date: Optional[str] = Query(None, description="Inclusive upper bound (YYYY-MM-DD or ISO)"),
    type: Optional[RecordingType] = Query(None, description="Arrival or Departure"),
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user)
):
    recordings = time_recording_service.list_recordings(
        db, current_user,
        id_user=id_user,
        start=parse_date_bound(start_date),
        end=parse_date_bound(end_date, end_of_day=True),
        recording_type=type,
    )
    return _to_response(recordings)

@router.get("/stats", response_model=RecordingStatsResponse)
def time_recording_stats(
    id_user: Optional[int] = Query(None),
    start_date: Optional[str] = Query(None),
    end_date: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user)
):
    statistics = stats_service.get_recording_stats(
        db, current_user, id_user,
        parse_date_bound(start_date),
        parse_date_bound(end_date, end_of_day=True),
    )
    return {"statistics": statistics, "period": {"start": start_date, "end": end_date}}

@router.get("/team/{team_id}", response_model=List[TimeRecordingResponse])
def team_time_recordings(
    team_id: int,
    date: Optional[str] = Query(None, description="Day (YYYY-MM-DD), defaults to today (UTC)"),
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user)
):
    day = parse_date_bound(date) or to_utc_naive(now_utc())
    return _to_response(time_recording_service.list_team_day_recordings(db, current_user, team_id, day))

@router.get("/{recording_id}", response_model=TimeRecordingResponse)
def get_time_recording(
    recording_id: int,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user)
):
    return TimeRecordingResponse.model_validate(
        time_recording_service.get_recording(db, current_user, recording_id)
    )

@router.post("", response_model=TimeRecordingResponse, status_code=status.HTTP_201_CREATED)
def create_time_recording(
    recording_data: TimeRecordingCreate,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user)
):
    recording = time_recording_service.create_recording(db, current_user, recording_data)
    return TimeRecordingResponse.model_validate(recording)

@router.put("/{recording_id}", response_model=TimeRecordingResponse)
def update_time_recording(
    recording_id: int,
    recording_data: TimeRecordingUpdate,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(require_roles(UserRole.manager, UserRole.admin))
):
    recording = time_recording_service.update_recording(db, current_user, recording_id, recording_data)
    return TimeRecordingResponse.model_validate(recording)

@router.delete("/{recording_id}", response_model=MessageResponse)
def delete_time_recording(
    recording_id: int,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(require_roles(UserRole.manager, UserRole.admin))
):
    time_recording_service.delete_recording(db, current_user, recording_id)
    return {"message": "Time recording deleted successfully"}
