"""
Lectures du monitoring : relevés de télémétrie, événements d'accès, tableau de bord.

Les statuts OK / WARNING / CRITICAL sont calculés à la lecture avec les seuils
courants (reading_classifier) : ils ne sont jamais stockés.
"""

from datetime import datetime, timedelta, timezone
from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from campusguard.models.device import Device
from campusguard.models.monitoring import AccessEvent, AccessResult, TelemetryReading
from campusguard.models.room import Room
from campusguard.schemas.monitoring import (
    AccessEventItem,
    AccessEventListResponse,
    LatestRoomReading,
    NamedRef,
    OverviewCards,
    OverviewResponse,
    ReadingItem,
    ReadingListResponse,
)
from campusguard.services.reading_classifier import ReadingStatus, classify
from campusguard.services.settings_service import SettingsStore

RECENT_ACCESS_EVENTS = 10


def interval_start(interval: Optional[str], now: Optional[datetime] = None) -> datetime:
    """Début de la fenêtre de lecture : 7 derniers jours pour "7d", sinon 24 dernières heures."""
    now = now or datetime.now(timezone.utc)
    if interval == "7d":
        return now - timedelta(days=7)
    return now - timedelta(hours=24)


def _ref(ref_id: Optional[int], name: Optional[str]) -> Optional[NamedRef]:
    if ref_id is None or name is None:
        return None
    return NamedRef(id=ref_id, name=name)


def _meta(metadata: Optional[dict], key: str) -> Optional[str]:
    if not isinstance(metadata, dict):
        return None
    value = metadata.get(key)
    return value if isinstance(value, str) else None


def _reading_conditions(room_id, device_id, start, end) -> list:
    conditions = [TelemetryReading.measured_at >= start]
    if end is not None:
        conditions.append(TelemetryReading.measured_at <= end)
    if room_id:
        conditions.append(TelemetryReading.room_id == room_id)
    if device_id:
        conditions.append(TelemetryReading.device_id == device_id)
    return conditions


def list_readings(
    db: Session,
    settings_store: SettingsStore,
    page: int = 1,
    per_page: int = 30,
    room_id: Optional[int] = None,
    device_id: Optional[int] = None,
    date_from: Optional[datetime] = None,
    date_to: Optional[datetime] = None,
    interval: Optional[str] = None,
) -> ReadingListResponse:
    """
    Relevés les plus récents d'abord, avec statut calculé.
    Sans `date_from`, la fenêtre est celle de `interval` (24h par défaut, ou 7d).
    """
    current = settings_store.get_or_create(db)
    conditions = _reading_conditions(room_id, device_id, date_from or interval_start(interval), date_to)

    total = db.execute(
        select(func.count()).select_from(TelemetryReading).where(*conditions)
    ).scalar() or 0
    rows = db.execute(
        select(TelemetryReading, Room.name, Device.name)
        .join(Room, Room.id == TelemetryReading.room_id)
        .join(Device, Device.id == TelemetryReading.device_id)
        .where(*conditions)
        .order_by(TelemetryReading.measured_at.desc())
        .offset((page - 1) * per_page)
        .limit(per_page)
    ).all()

    items = []
    for reading, room_name, device_name in rows:
        temperature = float(reading.temperature)
        humidity = float(reading.humidity)
        items.append(ReadingItem(
            id=reading.id,
            room=_ref(reading.room_id, room_name),
            device=_ref(reading.device_id, device_name),
            temperature=temperature,
            humidity=humidity,
            sensor_model=_meta(reading.reading_metadata, "sensor_model"),
            i2c_address=_meta(reading.reading_metadata, "i2c_address"),
            metadata=reading.reading_metadata,
            measured_at=reading.measured_at,
            created_at=reading.created_at,
            status=classify(temperature, humidity, current),
        ))

    return ReadingListResponse(items=items, total=total, page=page, per_page=per_page)


def _access_event_item(event: AccessEvent, device_name: Optional[str]) -> AccessEventItem:
    return AccessEventItem(
        id=event.id,
        device=_ref(event.device_id, device_name),
        student_id=event.student_id,
        result=event.result,
        reason=event.reason,
        metadata=event.event_metadata,
        occurred_at=event.occurred_at,
        created_at=event.created_at,
    )


def list_access_events(
    db: Session,
    page: int = 1,
    per_page: int = 20,
    student_id: Optional[int] = None,
    device_id: Optional[int] = None,
    result: Optional[AccessResult] = None,
    date_from: Optional[datetime] = None,
    date_to: Optional[datetime] = None,
) -> AccessEventListResponse:
    """Historique des tentatives RFID, les plus récentes d'abord."""
    conditions = []
    if student_id:
        conditions.append(AccessEvent.student_id == student_id)
    if device_id:
        conditions.append(AccessEvent.device_id == device_id)
    if result is not None:
        conditions.append(AccessEvent.result == result.value)
    if date_from is not None:
        conditions.append(AccessEvent.occurred_at >= date_from)
    if date_to is not None:
        conditions.append(AccessEvent.occurred_at <= date_to)

    total = db.execute(select(func.count()).select_from(AccessEvent).where(*conditions)).scalar() or 0
    rows = db.execute(
        select(AccessEvent, Device.name)
        .outerjoin(Device, Device.id == AccessEvent.device_id)
        .where(*conditions)
        .order_by(AccessEvent.occurred_at.desc())
        .offset((page - 1) * per_page)
        .limit(per_page)
    ).all()

    return AccessEventListResponse(
        items=[_access_event_item(event, device_name) for event, device_name in rows],
        total=total,
        page=page,
        per_page=per_page,
    )


def latest_room_readings(db: Session, settings_store: SettingsStore) -> List[LatestRoomReading]:
    """Dernier relevé de chaque salle active (les salles sans relevé sont omises)."""
    current = settings_store.get_or_create(db)
    rooms = db.execute(
        select(Room).where(Room.is_active.is_(True)).order_by(Room.name)
    ).scalars().all()

    latest = []
    for room in rooms:
        row = db.execute(
            select(TelemetryReading, Device.name)
            .join(Device, Device.id == TelemetryReading.device_id)
            .where(TelemetryReading.room_id == room.id)
            .order_by(TelemetryReading.measured_at.desc())
            .limit(1)
        ).first()
        if row is None:
            continue

        reading, device_name = row
        temperature = float(reading.temperature)
        humidity = float(reading.humidity)
        latest.append(LatestRoomReading(
            room_id=room.id,
            room_name=room.name,
            measured_at=reading.measured_at,
            device=_ref(reading.device_id, device_name),
            temperature=temperature,
            humidity=humidity,
            status=classify(temperature, humidity, current),
        ))
    return latest


def get_overview(db: Session, settings_store: SettingsStore) -> OverviewResponse:
    """Cartes du tableau de bord + derniers relevés par salle + 10 derniers accès."""
    active_rooms = db.execute(
        select(func.count()).select_from(Room).where(Room.is_active.is_(True))
    ).scalar() or 0
    latest = latest_room_readings(db, settings_store)
    events = db.execute(
        select(AccessEvent, Device.name)
        .outerjoin(Device, Device.id == AccessEvent.device_id)
        .order_by(AccessEvent.occurred_at.desc())
        .limit(RECENT_ACCESS_EVENTS)
    ).all()

    alerts = sum(1 for reading in latest if reading.status != ReadingStatus.OK)
    return OverviewResponse(
        cards=OverviewCards(
            active_rooms=active_rooms,
            rooms_with_latest_reading=len(latest),
            alerts=alerts,
            last_access_events=len(events),
        ),
        latest_readings=latest,
        last_access_events=[_access_event_item(event, device_name) for event, device_name in events],
    )
