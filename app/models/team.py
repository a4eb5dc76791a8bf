"""
Team Data Models
=====================================
SQLAlchemy ORM models for team rosters and shift timetables.

Models:
- Timetable: Shift start/end times a team works to
- Team: Named roster owned by a manager, optionally bound to a timetable
- TeamMember: Composite (team, user) membership link

Teams are the authorization boundary for managers: a manager acts on behalf
of the members of the teams they own.
"""

from sqlalchemy import Column, String, ForeignKey, Integer
from sqlalchemy.orm import relationship
from app.db.database import Base

class Timetable(Base):
    __tablename__ = "timetables"

    id = Column(Integer, primary_key=True, autoincrement=True, index=True)
    start_time = Column(String(5), nullable=False)  # HH:MM
    end_time = Column(String(5), nullable=False)

    teams = relationship("Team", back_populates="timetable")

class Team(Base):
    __tablename__ = "teams"

    id = Column(Integer, primary_key=True, autoincrement=True, index=True)
    name = Column(String, nullable=False)
    id_manager = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    id_timetable = Column(Integer, ForeignKey("timetables.id", ondelete="SET NULL"), nullable=True)

    manager = relationship("User", back_populates="managed_teams")
    timetable = relationship("Timetable", back_populates="teams")
    members = relationship("TeamMember", back_populates="team", cascade="all, delete-orphan")

class TeamMember(Base):
    __tablename__ = "team_members"

    id_team = Column(Integer, ForeignKey("teams.id", ondelete="CASCADE"), primary_key=True)
    id_user = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True, index=True)

    team = relationship("Team", back_populates="members")
    user = relationship("User")
