from pydantic import BaseModel
from typing import List, Optional

class StatsUser(BaseModel):
    id: int
    name: str
    surname: str
    email: str

class WorkSession(BaseModel):
    date: str
    arrival: str
    departure: str
    hours: float

class UserStatistics(BaseModel):
    user: StatsUser
    totalHours: float
    totalDays: int
    averageHoursPerDay: float
    workSessions: List[WorkSession]

class Period(BaseModel):
    start: Optional[str] = None
    end: Optional[str] = None

class RecordingStatsResponse(BaseModel):
    statistics: List[UserStatistics]
    period: Period

class TeamSummary(BaseModel):
    id: int
    name: str
    id_manager: int

class TeamAggregate(BaseModel):
    totalHours: float
    averageDaysWorked: float
    averageHoursPerDay: float
    memberCount: int

class TeamStatsResponse(BaseModel):
    team: TeamSummary
    statistics: List[UserStatistics]
    aggregated: TeamAggregate
    period: Period

class RoleDistribution(BaseModel):
    managers: int
    employees: int
    admins: int

class AdminStatsResponse(BaseModel):
    totalUsers: int
    totalTeams: int
    totalTimetables: int
    roles: RoleDistribution
    todayRecordings: int
    currentlyPresent: int
    teamsWithoutTimetable: int
    avgTeamSize: float
    activeManagers: int
    inactiveManagers: int
