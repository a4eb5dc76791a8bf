from .user import User, UserRole, RecordingType
from .team import Team, TeamMember, Timetable
from .time_recording import TimeRecording

__all__ = [
    "User", "UserRole", "RecordingType",
    "Team", "TeamMember", "Timetable",
    "TimeRecording"
]
