"""Equipment request DTOs."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator


class EquipmentRequestCreate(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    description: str = Field(min_length=1, max_length=4000)
    priority: Literal["low", "medium", "high"] = "medium"

    @field_validator("title", "description")
    @classmethod
    def strip_text(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v


class EquipmentStatusUpdate(BaseModel):
    status: Literal["pending", "approved", "delivered"]


class EquipmentRequestResponse(BaseModel):
    id: int
    title: str
    description: str
    priority: str
    status: str
    requester_name: str
    requester_email: str
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)
