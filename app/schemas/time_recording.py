"""
Time Recording Schemas
=====================================
Pydantic models for clock event request/response validation.

- TimeRecordingCreate: timestamp, type and owner of a new clock event
- TimeRecordingUpdate: partial update, every field optional
- TimeRecordingResponse: persisted event with a short owner projection

Timestamps are accepted in ISO-8601 with or without offset; naive values are
treated as UTC. Responses render timestamps as UTC with a Z suffix.
"""

from pydantic import BaseModel, ConfigDict, field_serializer
from typing import Optional
from datetime import datetime
from app.models.user import RecordingType
from app.core.time_utils import isoformat_utc

class TimeRecordingCreate(BaseModel):
    timestamp: datetime
    type: RecordingType
    id_user: int

class TimeRecordingUpdate(BaseModel):
    timestamp: Optional[datetime] = None
    type: Optional[RecordingType] = None
    id_user: Optional[int] = None

class RecordingOwner(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    surname: str
    email: str

class TimeRecordingResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    timestamp: datetime
    type: RecordingType
    id_user: int
    user: Optional[RecordingOwner] = None

    @field_serializer("timestamp")
    def serialize_timestamp(self, value: datetime) -> str:
        return isoformat_utc(value)
