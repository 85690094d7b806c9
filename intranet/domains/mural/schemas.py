"""Mural DTOs."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator


class PostCreate(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    content: str = Field(min_length=1, max_length=10000)
    pinned: bool = False

    @field_validator("title", "content")
    @classmethod
    def strip_text(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v


class CommentCreate(BaseModel):
    text: str = Field(min_length=1, max_length=2000)

    @field_validator("text")
    @classmethod
    def strip_text(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v


class PostResponse(BaseModel):
    id: int
    title: str
    content: str
    pinned: bool
    author_name: str
    created_at: datetime
    likes_count: int = 0
    comments_count: int = 0
    liked_by_me: bool = False


class CommentResponse(BaseModel):
    id: int
    post_id: int
    user_name: str
    text: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
