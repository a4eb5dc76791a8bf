# ------------------------------------------
# SQLAlchemy TimeRecording model definition
# One clock event (Arrival or Departure) of a user
# - Timestamps are stored as naive UTC
# - Per user, events ordered by timestamp alternate in type
# ------------------------------------------

from sqlalchemy import Column, DateTime, ForeignKey, Enum, Integer, Index
from sqlalchemy.orm import relationship
from app.db.database import Base
from app.models.user import RecordingType

class TimeRecording(Base):
    __tablename__ = "time_recordings"
    __table_args__ = (
        Index("ix_time_recordings_user_timestamp", "id_user", "timestamp"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True, index=True)
    timestamp = Column(DateTime, nullable=False)
    type = Column(Enum(RecordingType, values_callable=lambda e: [m.value for m in e]), nullable=False)
    id_user = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)

    user = relationship("User", back_populates="time_recordings")
