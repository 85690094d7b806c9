"""Reception appointment DTOs."""

from __future__ import annotations

from datetime import date, datetime, time
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class AppointmentCreate(BaseModel):
    visitor_name: str = Field(min_length=1, max_length=255)
    visitor_document: Optional[str] = Field(default=None, max_length=64)
    visit_date: date
    visit_time: time
    note: Optional[str] = Field(default=None, max_length=2000)

    @field_validator("visitor_name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v


class AppointmentResponse(BaseModel):
    id: int
    visitor_name: str
    visitor_document: Optional[str] = None
    visit_date: date
    visit_time: time
    note: Optional[str] = None
    created_by_name: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
