"""
Schémas Pydantic pour les salles surveillées.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, field_validator


class RoomCreate(BaseModel):
    name: str
    location: Optional[str] = None
    is_active: bool = True

    @field_validator("name")
    @classmethod
    def name_not_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Le nom de la salle ne peut pas être vide.")
        return v.strip()

    @field_validator("location")
    @classmethod
    def location_blank_to_none(cls, v: Optional[str]) -> Optional[str]:
        if v is None or not v.strip():
            return None
        return v.strip()


class RoomUpdate(RoomCreate):
    """Remplacement complet des champs modifiables (PUT)."""


class RoomResponse(BaseModel):
    id: int
    name: str
    location: Optional[str]
    is_active: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class RoomListItem(RoomResponse):
    device_count: int = 0
    reading_count: int = 0


class RoomListResponse(BaseModel):
    items: List[RoomListItem]
    total: int
    page: int
    per_page: int
