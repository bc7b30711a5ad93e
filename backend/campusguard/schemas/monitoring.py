"""
Schémas Pydantic des vues de monitoring : relevés, événements d'accès, tableau de bord.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel

from campusguard.services.reading_classifier import ReadingStatus


class NamedRef(BaseModel):
    id: int
    name: str


class ReadingItem(BaseModel):
    """Relevé de télémétrie enrichi de son statut calculé."""
    id: int
    room: Optional[NamedRef]
    device: Optional[NamedRef]
    temperature: float
    humidity: float
    sensor_model: Optional[str] = None
    i2c_address: Optional[str] = None
    metadata: Optional[dict] = None
    measured_at: datetime
    created_at: Optional[datetime] = None
    status: ReadingStatus


class ReadingListResponse(BaseModel):
    items: List[ReadingItem]
    total: int
    page: int
    per_page: int


class AccessEventItem(BaseModel):
    id: int
    device: Optional[NamedRef]
    student_id: int
    result: str
    reason: str
    metadata: Optional[dict] = None
    occurred_at: datetime
    created_at: Optional[datetime] = None


class AccessEventListResponse(BaseModel):
    items: List[AccessEventItem]
    total: int
    page: int
    per_page: int


class LatestRoomReading(BaseModel):
    room_id: int
    room_name: str
    measured_at: datetime
    device: Optional[NamedRef]
    temperature: float
    humidity: float
    status: ReadingStatus


class OverviewCards(BaseModel):
    active_rooms: int
    rooms_with_latest_reading: int
    alerts: int
    last_access_events: int


class OverviewResponse(BaseModel):
    cards: OverviewCards
    latest_readings: List[LatestRoomReading]
    last_access_events: List[AccessEventItem]
