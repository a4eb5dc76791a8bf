# ------------------------------------------
# SQLAlchemy User model definition
# Represents employees, managers and admins
# - Stores auto-incrementing integer ID as primary key
# - Tracks identity, bcrypt password hash and role
# - Embeds the refresh session (token hash + family) for rotation
# - Caches the type of the user's latest time recording
# ------------------------------------------

from sqlalchemy import Column, String, TIMESTAMP, ForeignKey, Enum, Integer
from sqlalchemy.orm import relationship
from datetime import datetime, timezone
import enum
from app.db.database import Base

class UserRole(str, enum.Enum):
    admin = "admin"
    manager = "manager"
    employee = "employee"

class RecordingType(str, enum.Enum):
    arrival = "Arrival"
    departure = "Departure"

    @property
    def opposite(self) -> "RecordingType":
        return RecordingType.departure if self is RecordingType.arrival else RecordingType.arrival

class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True, index=True)
    name = Column(String, nullable=False)
    surname = Column(String, nullable=False)
    mobile_number = Column(String, nullable=True)
    email = Column(String, unique=True, nullable=False, index=True)
    password_hash = Column(String, nullable=False)
    role = Column(Enum(UserRole), nullable=False, default=UserRole.employee)
    id_manager = Column(Integer, ForeignKey("users.id"), nullable=True)

    # At most one live refresh chain per user: hash of the current jti and its family
    refresh_token_hash = Column(String(64), nullable=True)
    refresh_token_family = Column(String(36), nullable=True)

    last_event_type = Column(Enum(RecordingType, values_callable=lambda e: [m.value for m in e]), nullable=True)
    created_at = Column(TIMESTAMP, default=lambda: datetime.now(timezone.utc))

    manager = relationship("User", remote_side=[id], back_populates="employees")
    employees = relationship("User", back_populates="manager")
    time_recordings = relationship("TimeRecording", back_populates="user", cascade="all, delete-orphan")
    managed_teams = relationship("Team", back_populates="manager")
