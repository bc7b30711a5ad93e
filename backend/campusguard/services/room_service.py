"""
Service métier pour les salles surveillées (CRUD administratif).
"""

import logging

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from campusguard.models.device import Device
from campusguard.models.monitoring import TelemetryReading
from campusguard.models.room import Room
from campusguard.schemas.room import RoomCreate, RoomListItem, RoomListResponse, RoomUpdate
from campusguard.services.device_service import RoomNotFoundError

logger = logging.getLogger(__name__)


class RoomHasDependentsError(ValueError):
    """Suppression refusée : des capteurs ou relevés référencent la salle."""


def list_rooms(db: Session, page: int = 1, per_page: int = 20, q: str = "") -> RoomListResponse:
    """Liste paginée des salles (recherche insensible à la casse sur nom et localisation)."""
    device_count = (
        select(func.count(Device.id)).where(Device.room_id == Room.id).correlate(Room).scalar_subquery()
    )
    reading_count = (
        select(func.count(TelemetryReading.id))
        .where(TelemetryReading.room_id == Room.id)
        .correlate(Room)
        .scalar_subquery()
    )

    conditions = []
    if q:
        pattern = f"%{q}%"
        conditions.append(or_(Room.name.ilike(pattern), Room.location.ilike(pattern)))

    total = db.execute(select(func.count()).select_from(Room).where(*conditions)).scalar() or 0
    rows = db.execute(
        select(Room, device_count, reading_count)
        .where(*conditions)
        .order_by(Room.name)
        .offset((page - 1) * per_page)
        .limit(per_page)
    ).all()

    items = [
        RoomListItem(
            id=room.id,
            name=room.name,
            location=room.location,
            is_active=room.is_active,
            created_at=room.created_at,
            updated_at=room.updated_at,
            device_count=devices or 0,
            reading_count=readings or 0,
        )
        for room, devices, readings in rows
    ]
    return RoomListResponse(items=items, total=total, page=page, per_page=per_page)


def get_room(db: Session, room_id: int) -> Room:
    room = db.get(Room, room_id)
    if room is None:
        raise RoomNotFoundError(f"Salle {room_id} introuvable.")
    return room


def create_room(db: Session, data: RoomCreate) -> Room:
    room = Room(name=data.name, location=data.location, is_active=data.is_active)
    db.add(room)
    db.commit()
    db.refresh(room)
    logger.info("Salle %s créée (%s)", room.id, room.name)
    return room


def update_room(db: Session, room_id: int, data: RoomUpdate) -> Room:
    room = get_room(db, room_id)
    room.name = data.name
    room.location = data.location
    room.is_active = data.is_active
    db.commit()
    db.refresh(room)
    return room


def delete_room(db: Session, room_id: int) -> None:
    """
    Supprime une salle. La BDD refuse si des capteurs ou relevés y sont liés :
    aucune cascade, RoomHasDependentsError est levée.
    """
    room = get_room(db, room_id)
    db.delete(room)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise RoomHasDependentsError("Impossible de supprimer une salle ayant des capteurs ou relevés liés.")
    logger.info("Salle %s supprimée", room_id)
