"""Protein exchange DTOs."""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

# One month of meal days per submission.
MAX_BULK_ITEMS = 31


class ExchangeItem(BaseModel):
    exchange_date: date
    original_protein: str = Field(min_length=1, max_length=120)
    new_protein: str = Field(min_length=1, max_length=120)

    @field_validator("original_protein", "new_protein")
    @classmethod
    def strip_text(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v

    @model_validator(mode="after")
    def check_swap(self) -> "ExchangeItem":
        if self.original_protein.casefold() == self.new_protein.casefold():
            raise ValueError("new_protein must differ from original_protein")
        return self


class ExchangeBulk(BaseModel):
    # Items are validated one by one so a bad day does not sink the batch.
    exchanges: List[Dict[str, Any]] = Field(min_length=1, max_length=MAX_BULK_ITEMS)


class ExchangeListParams(BaseModel):
    start: Optional[date] = Field(default=None, alias="from")
    end: Optional[date] = Field(default=None, alias="to")

    @model_validator(mode="after")
    def check_range(self) -> "ExchangeListParams":
        if self.start and self.end and self.start > self.end:
            raise ValueError("from must not be after to")
        return self


class ExchangeResponse(BaseModel):
    id: int
    exchange_date: date
    original_protein: str
    new_protein: str
    user_name: str
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class BulkResult(BaseModel):
    created: int = 0
    replaced: int = 0
    skipped: List[Dict[str, Any]] = Field(default_factory=list)
    points: int = 0
