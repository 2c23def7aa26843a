"""SQLModel schemas for the web API."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from sqlmodel import Field, SQLModel


class CatalogEntry(SQLModel):
    name: str
    rarityPermille: Optional[float] = None


class ResolvedRecordRead(SQLModel):
    gift: str
    model: Optional[str] = None
    backdrop: Optional[Dict[str, Any]] = None
    pattern: Optional[str] = None
    total_issued: Optional[int] = None


class ResolutionRead(SQLModel):
    state: str
    status: str
    record: Optional[ResolvedRecordRead] = None
    gift_id: Optional[str] = None
    image_url: Optional[str] = None
    animation_url: Optional[str] = None
    models: List[CatalogEntry] = Field(default_factory=list)
    patterns: List[CatalogEntry] = Field(default_factory=list)
