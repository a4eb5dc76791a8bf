"""
Time Recording Service
=====================================
Clock-in/clock-out state machine and role-scoped access to clock events.

Rules:
- Per user, recordings ordered by timestamp alternate between Arrival and
  Departure; the first one may be either.
- A new recording is checked against its chronological neighbours at the
  inserted timestamp, so back-dated entries cannot break alternation.
  This is not a comparison with the most recent recording: a back-dated
  Departure placed before an existing Arrival/Departure pair is accepted,
  because its only neighbour is the later Arrival.
- Updates re-check the resulting record against its neighbours.
- Deletes do not re-check alternation.
- Writes lock the owner's user row so concurrent clock events for the same
  user are serialised, and keep User.last_event_type in step with the
  latest recording.

Authorization is delegated to app.services.policies.
"""

import logging
from datetime import datetime, timedelta
from typing import List, Optional, Tuple
from fastapi import HTTPException, status
from sqlalchemy import select
from sqlalchemy.orm import Session, joinedload

from app.core.security import CurrentUser
from app.core.time_utils import to_utc_naive
from app.models.user import User, RecordingType
from app.models.team import Team, TeamMember
from app.models.time_recording import TimeRecording
from app.schemas.time_recording import TimeRecordingCreate, TimeRecordingUpdate
from app.services.policies import policy_for, Action

logger = logging.getLogger(__name__)

FORBIDDEN_READ = "Forbidden - cannot access recordings of other users"

def _clock_word(recording_type: RecordingType) -> str:
    return "in" if recording_type == RecordingType.arrival else "out"

def _get_recording_or_404(db: Session, recording_id: int) -> TimeRecording:
    recording = db.query(TimeRecording).options(joinedload(TimeRecording.user)).filter(
        TimeRecording.id == recording_id
    ).first()
    if not recording:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Time recording not found")
    return recording

def _lock_user(db: Session, user_id: int) -> Optional[User]:
    return db.query(User).filter(User.id == user_id).with_for_update().first()

def find_neighbours(
    db: Session,
    user_id: int,
    timestamp: datetime,
    exclude_id: Optional[int] = None,
) -> Tuple[Optional[TimeRecording], Optional[TimeRecording]]:
    """Closest recordings of ``user_id`` strictly before and strictly after ``timestamp``."""
    base = db.query(TimeRecording).filter(TimeRecording.id_user == user_id)
    if exclude_id is not None:
        base = base.filter(TimeRecording.id != exclude_id)

    previous = base.filter(TimeRecording.timestamp < timestamp).order_by(
        TimeRecording.timestamp.desc(), TimeRecording.id.desc()
    ).first()
    following = base.filter(TimeRecording.timestamp > timestamp).order_by(
        TimeRecording.timestamp.asc(), TimeRecording.id.asc()
    ).first()
    return previous, following

def _same_instant_exists(db: Session, user_id: int, timestamp: datetime, exclude_id: Optional[int] = None) -> bool:
    query = db.query(TimeRecording).filter(
        TimeRecording.id_user == user_id,
        TimeRecording.timestamp == timestamp
    )
    if exclude_id is not None:
        query = query.filter(TimeRecording.id != exclude_id)
    return query.first() is not None

def sync_last_event_type(db: Session, user_id: int) -> None:
    latest = db.query(TimeRecording).filter(TimeRecording.id_user == user_id).order_by(
        TimeRecording.timestamp.desc(), TimeRecording.id.desc()
    ).first()
    user = db.query(User).filter(User.id == user_id).first()
    if user is not None:
        user.last_event_type = latest.type if latest else None

def list_recordings(
    db: Session,
    current_user: CurrentUser,
    id_user: Optional[int] = None,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    recording_type: Optional[RecordingType] = None,
) -> List[TimeRecording]:
    policy = policy_for(current_user)
    query = db.query(TimeRecording).options(joinedload(TimeRecording.user))

    if id_user is not None:
        if not policy.can_access(db, id_user, Action.read):
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=FORBIDDEN_READ)
        query = query.filter(TimeRecording.id_user == id_user)
    else:
        visible = policy.visible_user_ids(db)
        if visible is not None:
            query = query.filter(TimeRecording.id_user.in_(visible))

    if recording_type is not None:
        query = query.filter(TimeRecording.type == recording_type)
    if start is not None:
        query = query.filter(TimeRecording.timestamp >= start)
    if end is not None:
        query = query.filter(TimeRecording.timestamp <= end)

    return query.order_by(TimeRecording.timestamp.desc(), TimeRecording.id.desc()).all()

def get_recording(db: Session, current_user: CurrentUser, recording_id: int) -> TimeRecording:
    recording = _get_recording_or_404(db, recording_id)
    if not policy_for(current_user).can_access(db, recording.id_user, Action.read):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=FORBIDDEN_READ)
    return recording

def create_recording(db: Session, current_user: CurrentUser, data: TimeRecordingCreate) -> TimeRecording:
    if not policy_for(current_user).can_access(db, data.id_user, Action.create):
        logger.warning(f"User {current_user.id} ({current_user.role.value}) tried to clock for user {data.id_user}")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Forbidden - you cannot create recordings for this user"
        )

    target = _lock_user(db, data.id_user)
    if target is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"User with ID {data.id_user} not found")

    timestamp = to_utc_naive(data.timestamp)
    recording_type = data.type

    if _same_instant_exists(db, data.id_user, timestamp):
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="A recording already exists at this timestamp for this user"
        )

    previous, following = find_neighbours(db, data.id_user, timestamp)
    if previous is not None and previous.type == recording_type:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Cannot clock {recording_type.value.lower()} twice without clocking "
                   f"{_clock_word(recording_type.opposite)} first"
        )
    if following is not None and following.type == recording_type:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Cannot clock {recording_type.value.lower()} at this time - "
                   f"would create consecutive {recording_type.value} recordings"
        )

    recording = TimeRecording(timestamp=timestamp, type=recording_type, id_user=data.id_user)
    db.add(recording)
    db.flush()
    sync_last_event_type(db, data.id_user)
    db.commit()
    db.refresh(recording)

    logger.info(f"Recorded {recording_type.value} for user {data.id_user} at {timestamp} (by user {current_user.id})")
    return recording

def update_recording(
    db: Session,
    current_user: CurrentUser,
    recording_id: int,
    data: TimeRecordingUpdate,
) -> TimeRecording:
    recording = _get_recording_or_404(db, recording_id)
    policy = policy_for(current_user)

    if not policy.can_access(db, recording.id_user, Action.update):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Forbidden - cannot modify recordings of users outside your team"
        )

    original_user_id = recording.id_user
    target_user_id = data.id_user if data.id_user is not None else recording.id_user
    target_timestamp = to_utc_naive(data.timestamp) if data.timestamp is not None else recording.timestamp
    target_type = data.type if data.type is not None else recording.type

    if target_user_id != original_user_id:
        if not policy.can_access(db, target_user_id, Action.update):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Forbidden - cannot move recordings to users outside your team"
            )

    if _lock_user(db, target_user_id) is None:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"User with ID {target_user_id} not found")

    changed = (
        target_user_id != original_user_id
        or target_timestamp != recording.timestamp
        or target_type != recording.type
    )
    if changed:
        if _same_instant_exists(db, target_user_id, target_timestamp, exclude_id=recording.id):
            db.rollback()
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="A recording already exists at this timestamp for this user"
            )
        previous, following = find_neighbours(db, target_user_id, target_timestamp, exclude_id=recording.id)
        if (previous is not None and previous.type == target_type) or \
                (following is not None and following.type == target_type):
            db.rollback()
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Cannot update to {target_type.value} - would create consecutive {target_type.value} recordings"
            )

    recording.id_user = target_user_id
    recording.timestamp = target_timestamp
    recording.type = target_type
    db.flush()

    sync_last_event_type(db, target_user_id)
    if target_user_id != original_user_id:
        sync_last_event_type(db, original_user_id)
    db.commit()
    db.refresh(recording)

    logger.info(f"Time recording {recording.id} updated by user {current_user.id}")
    return recording

def delete_recording(db: Session, current_user: CurrentUser, recording_id: int) -> None:
    recording = _get_recording_or_404(db, recording_id)

    if not policy_for(current_user).can_access(db, recording.id_user, Action.delete):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Forbidden - cannot delete recordings of users outside your team"
        )

    user_id = recording.id_user
    db.delete(recording)
    db.flush()
    sync_last_event_type(db, user_id)
    db.commit()

    logger.info(f"Time recording {recording_id} of user {user_id} deleted by user {current_user.id}")

def list_team_day_recordings(
    db: Session,
    current_user: CurrentUser,
    team_id: int,
    day: datetime,
) -> List[TimeRecording]:
    team = db.query(Team).filter(Team.id == team_id).first()
    if not team:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Team not found")

    if not policy_for(current_user).can_view_team(db, team):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access denied: you must be an admin, the manager or a member of this team"
        )

    start_of_day = day.replace(hour=0, minute=0, second=0, microsecond=0)
    end_of_day = start_of_day + timedelta(days=1)

    member_ids = select(TeamMember.id_user).where(TeamMember.id_team == team.id)
    return (
        db.query(TimeRecording)
        .options(joinedload(TimeRecording.user))
        .filter(
            TimeRecording.id_user.in_(member_ids),
            TimeRecording.timestamp >= start_of_day,
            TimeRecording.timestamp < end_of_day,
        )
        .order_by(TimeRecording.id_user.asc(), TimeRecording.timestamp.asc())
        .all()
    )
