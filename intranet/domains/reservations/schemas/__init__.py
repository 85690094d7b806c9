"""Booking DTOs and schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class BookingCreate(BaseModel):
    room: str = Field(min_length=1, max_length=64)
    title: str = Field(min_length=1, max_length=255)
    start: datetime
    end: datetime
    external_ref: Optional[str] = Field(default=None, max_length=255)
    idempotency_key: Optional[str] = Field(default=None, min_length=8, max_length=64)

    @field_validator("title", "room")
    @classmethod
    def strip_text(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v

    @model_validator(mode="after")
    def check_interval(self) -> "BookingCreate":
        if (self.start.tzinfo is None) != (self.end.tzinfo is None):
            raise ValueError("start and end must share timezone awareness")
        if self.start >= self.end:
            raise ValueError("start must be before end")
        return self


class BookingUpdate(BaseModel):
    room: Optional[str] = Field(default=None, min_length=1, max_length=64)
    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    start: Optional[datetime] = None
    end: Optional[datetime] = None


class BookingListParams(BaseModel):
    room: Optional[str] = None
    start: Optional[datetime] = None
    end: Optional[datetime] = None


class BookingResponse(BaseModel):
    id: int
    room: str
    room_name: str
    title: str
    start: datetime
    end: datetime
    owner_name: str
    owner_email: str
    external_ref: Optional[str] = None
    duration_minutes: int
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)
