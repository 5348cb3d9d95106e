"""Schemas for photos and user profiles returned by the backend."""
from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class PhotoAuthor(BaseModel):
    username: str
    display_name: str | None = None


class Photo(BaseModel):
    """Single photo as listed in discovery, feeds, galleries and search."""

    model_config = ConfigDict(from_attributes=True, extra="ignore")

    id: str
    user_id: str
    title: str | None = None
    caption: str | None = None
    file_url: str
    thumbnail_url: str | None = None
    width: int | None = None
    height: int | None = None
    tags: list[str] = Field(default_factory=list)
    series_id: str | None = None
    display_order: int | None = None
    created_at: datetime
    user: PhotoAuthor | None = None


class UserProfile(BaseModel):
    model_config = ConfigDict(from_attributes=True, extra="ignore")

    id: str
    username: str
    display_name: str | None = None
    bio: str | None = None
    equipment: str | None = None
    created_at: datetime


__all__ = ["Photo", "PhotoAuthor", "UserProfile"]
