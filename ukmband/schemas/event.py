"""Event, lineup and setlist Pydantic schemas."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from ukmband.models.event import EventStatus
from ukmband.models.event_personnel import PersonnelStatus


class EventStatusUpdate(BaseModel):
    status: EventStatus


class SlotRegistration(BaseModel):
    personnel_id: int = Field(alias="personnelId")

    model_config = {"populate_by_name": True}


class SlotModeration(BaseModel):
    status: PersonnelStatus


class PersonnelOut(BaseModel):
    id: int
    event_id: int
    user_id: Optional[int] = None
    role: str
    status: PersonnelStatus
    approved_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class SongCreate(BaseModel):
    title: str
    artist: Optional[str] = None
    key: Optional[str] = None
    notes: Optional[str] = None
    order: Optional[int] = None


class SongOut(BaseModel):
    id: int
    event_id: int
    title: str
    artist: Optional[str] = None
    key: Optional[str] = None
    order: int
    notes: Optional[str] = None
    added_by_id: Optional[int] = None

    model_config = {"from_attributes": True}


class SongReorder(BaseModel):
    song_ids: List[int] = Field(alias="songIds")

    model_config = {"populate_by_name": True}
