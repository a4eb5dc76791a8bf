"""
Statistics Service
=====================================
Turns clock events into work-hour statistics.

Features:
- Pairs the i-th arrival with the i-th departure of each user
- Per-user total hours, distinct worked days and average hours per day
- Team aggregation that weights every member equally (average of averages)
- Admin dashboard counters

The aggregation functions are pure and operate on rows that have already
been scoped by the caller's authorization policy.
"""

import logging
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Iterable
from fastapi import HTTPException, status
from sqlalchemy import and_, func
from sqlalchemy.orm import Session, joinedload

from app.core.security import CurrentUser
from app.core.time_utils import isoformat_utc, now_utc, to_utc_naive
from app.models.user import User, UserRole, RecordingType
from app.models.team import Team, TeamMember, Timetable
from app.models.time_recording import TimeRecording
from app.services.policies import policy_for, Action

logger = logging.getLogger(__name__)

MS_PER_HOUR = 3_600_000

def hours_between(arrival: datetime, departure: datetime) -> float:
    """Hours worked between an arrival and a departure; 0 when departure <= arrival."""
    if departure <= arrival:
        return 0.0
    elapsed_ms = (departure - arrival) // timedelta(milliseconds=1)
    return elapsed_ms / MS_PER_HOUR

def _user_projection(user: User) -> Dict:
    return {"id": user.id, "name": user.name, "surname": user.surname, "email": user.email}

def compute_user_statistics(recordings: Iterable[TimeRecording]) -> List[Dict]:
    """Group recordings by user and compute hours, days and sessions for each."""
    grouped: Dict[int, Dict] = {}

    for record in sorted(recordings, key=lambda r: r.timestamp):
        entry = grouped.get(record.id_user)
        if entry is None:
            entry = grouped[record.id_user] = {"user": record.user, "arrivals": [], "departures": []}
        if record.type == RecordingType.arrival:
            entry["arrivals"].append(record.timestamp)
        else:
            entry["departures"].append(record.timestamp)

    return [
        _build_user_stats(entry["user"], entry["arrivals"], entry["departures"])
        for _, entry in sorted(grouped.items())
    ]

def _build_user_stats(user: User, arrivals: List[datetime], departures: List[datetime]) -> Dict:
    total_hours = 0.0
    work_days = set()
    sessions = []

    for arrival, departure in zip(arrivals, departures):
        if departure <= arrival:
            continue
        hours = hours_between(arrival, departure)
        total_hours += hours
        day_key = to_utc_naive(arrival).date().isoformat()
        work_days.add(day_key)
        sessions.append({
            "date": day_key,
            "arrival": isoformat_utc(arrival),
            "departure": isoformat_utc(departure),
            "hours": hours,
        })

    total_days = len(work_days)
    return {
        "user": _user_projection(user),
        "totalHours": total_hours,
        "totalDays": total_days,
        "averageHoursPerDay": total_hours / total_days if total_days > 0 else 0,
        "workSessions": sessions,
    }

def empty_user_statistics(user: User) -> Dict:
    return _build_user_stats(user, [], [])

def aggregate_team(statistics: List[Dict], member_count: int) -> Dict:
    """Team totals; day and hour averages are averages of the members' own figures."""
    if member_count <= 0:
        return {"totalHours": 0, "averageDaysWorked": 0, "averageHoursPerDay": 0, "memberCount": 0}

    return {
        "totalHours": sum(s["totalHours"] for s in statistics),
        "averageDaysWorked": sum(s["totalDays"] for s in statistics) / member_count,
        "averageHoursPerDay": sum(s["averageHoursPerDay"] for s in statistics) / member_count,
        "memberCount": member_count,
    }

def _apply_period(query, start: Optional[datetime], end: Optional[datetime]):
    if start is not None:
        query = query.filter(TimeRecording.timestamp >= start)
    if end is not None:
        query = query.filter(TimeRecording.timestamp <= end)
    return query

def get_recording_stats(
    db: Session,
    current_user: CurrentUser,
    id_user: Optional[int],
    start: Optional[datetime],
    end: Optional[datetime],
) -> List[Dict]:
    policy = policy_for(current_user)

    if current_user.role == UserRole.employee:
        id_user = current_user.id
    elif id_user is not None and not policy.can_access(db, id_user, Action.read):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Forbidden - cannot access statistics of users outside your team"
        )

    query = db.query(TimeRecording).options(joinedload(TimeRecording.user))
    if id_user is not None:
        query = query.filter(TimeRecording.id_user == id_user)
    else:
        visible = policy.visible_user_ids(db)
        if visible is not None:
            query = query.filter(TimeRecording.id_user.in_(visible))

    recordings = _apply_period(query, start, end).order_by(
        TimeRecording.id_user.asc(), TimeRecording.timestamp.asc()
    ).all()
    logger.debug(f"Computing statistics over {len(recordings)} recordings for user {current_user.id}")
    return compute_user_statistics(recordings)

def get_team_stats(
    db: Session,
    current_user: CurrentUser,
    team_id: int,
    start: Optional[datetime],
    end: Optional[datetime],
) -> Dict:
    team = db.query(Team).filter(Team.id == team_id).first()
    if not team:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Team not found")

    if not policy_for(current_user).can_view_team(db, team):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access denied: you must be an admin, the manager or a member of this team"
        )

    members = (
        db.query(User)
        .join(TeamMember, TeamMember.id_user == User.id)
        .filter(TeamMember.id_team == team.id)
        .order_by(User.id)
        .all()
    )
    member_ids = [member.id for member in members]

    recordings = []
    if member_ids:
        query = db.query(TimeRecording).options(joinedload(TimeRecording.user)).filter(
            TimeRecording.id_user.in_(member_ids)
        )
        recordings = _apply_period(query, start, end).order_by(TimeRecording.timestamp.asc()).all()

    by_user = {s["user"]["id"]: s for s in compute_user_statistics(recordings)}
    statistics = [by_user.get(member.id) or empty_user_statistics(member) for member in members]

    return {
        "team": {"id": team.id, "name": team.name, "id_manager": team.id_manager},
        "statistics": statistics,
        "aggregated": aggregate_team(statistics, len(members)),
    }

def _count_present_today(db: Session, start_of_day: datetime, end_of_day: datetime) -> int:
    """Users whose latest recording is an Arrival stamped today (UTC)."""
    latest = (
        db.query(TimeRecording.id_user, func.max(TimeRecording.timestamp).label("latest_at"))
        .group_by(TimeRecording.id_user)
        .subquery()
    )
    return (
        db.query(func.count(func.distinct(TimeRecording.id_user)))
        .select_from(TimeRecording)
        .join(latest, and_(
            TimeRecording.id_user == latest.c.id_user,
            TimeRecording.timestamp == latest.c.latest_at,
        ))
        .filter(
            TimeRecording.type == RecordingType.arrival,
            TimeRecording.timestamp >= start_of_day,
            TimeRecording.timestamp <= end_of_day,
        )
        .scalar()
    ) or 0

def get_admin_stats(db: Session) -> Dict:
    now = to_utc_naive(now_utc())
    start_of_day = now.replace(hour=0, minute=0, second=0, microsecond=0)
    end_of_day = start_of_day + timedelta(days=1, microseconds=-1)

    roles = {"managers": 0, "employees": 0, "admins": 0}
    for role, count in db.query(User.role, func.count(User.id)).group_by(User.role).all():
        roles[f"{role.value}s"] = count

    team_sizes = (
        db.query(func.count(TeamMember.id_user).label("size"))
        .group_by(TeamMember.id_team)
        .subquery()
    )
    avg_team_size = db.query(func.avg(team_sizes.c.size)).scalar() or 0

    active_managers = db.query(func.count(func.distinct(Team.id_manager))).scalar() or 0
    total_managers = roles["managers"]

    return {
        "totalUsers": db.query(User).count(),
        "totalTeams": db.query(Team).count(),
        "totalTimetables": db.query(Timetable).count(),
        "roles": roles,
        "todayRecordings": db.query(TimeRecording).filter(
            TimeRecording.timestamp >= start_of_day,
            TimeRecording.timestamp <= end_of_day
        ).count(),
        "currentlyPresent": _count_present_today(db, start_of_day, end_of_day),
        "teamsWithoutTimetable": db.query(Team).filter(Team.id_timetable.is_(None)).count(),
        "avgTeamSize": round(float(avg_team_size), 1),
        "activeManagers": active_managers,
        "inactiveManagers": max(total_managers - active_managers, 0),
    }
