"""
Enregistreur de télémétrie des capteurs de salle (température / humidité).

Ordre des contrôles :
  1. Dispositif inactif                      → DEVICE_INACTIVE
  2. Dispositif autre que ROOM_SENSOR        → INVALID_DEVICE
  3. Salle inexistante                       → ROOM_NOT_FOUND
  4. Capteur déjà lié à une autre salle      → ROOM_MISMATCH
  5. Capteur non lié → liaison à cette salle (une seule fois)
  6. Insertion du TelemetryReading

Liaison à la première télémétrie : UPDATE conditionnel (room_id IS NULL).
Si deux premières soumissions concurrentes visent des salles différentes,
la première validée l'emporte ; l'autre reçoit ROOM_MISMATCH.

Les échecs de validation sont des valeurs de retour ; seules les erreurs de
stockage sont propagées.
"""

import enum
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from campusguard.models.device import Device, DeviceType
from campusguard.models.monitoring import TelemetryReading
from campusguard.models.room import Room
from campusguard.schemas.monitoring_settings import HardwareProfile
from campusguard.services.settings_service import SettingsStore

logger = logging.getLogger(__name__)


class TelemetryFailure(str, enum.Enum):
    DEVICE_INACTIVE = "DEVICE_INACTIVE"
    INVALID_DEVICE = "INVALID_DEVICE"
    ROOM_NOT_FOUND = "ROOM_NOT_FOUND"
    ROOM_MISMATCH = "ROOM_MISMATCH"


@dataclass(frozen=True)
class TelemetryMetadata:
    sensor_model: Optional[str] = None
    i2c_address: Optional[str] = None
    transport: Optional[str] = None
    connectivity: Optional[str] = None

    def resolve(self, profile: HardwareProfile) -> dict:
        return {
            "transport": self.transport or profile.transport,
            "connectivity": self.connectivity or profile.connectivity,
            "sensor_model": self.sensor_model or profile.telemetry.sensor_model,
            "i2c_address": self.i2c_address or profile.telemetry.i2c_address,
        }


@dataclass(frozen=True)
class TelemetryOutcome:
    ok: bool
    reason: Optional[TelemetryFailure] = None

    @classmethod
    def accepted(cls) -> "TelemetryOutcome":
        return cls(ok=True)

    @classmethod
    def rejected(cls, reason: TelemetryFailure) -> "TelemetryOutcome":
        return cls(ok=False, reason=reason)


def _bind_room(db: Session, device: Device, room_id: int) -> bool:
    """
    Lie un capteur encore libre à la salle. Retourne False si un autre appel l'a
    lié à une salle différente entre-temps.
    """
    result = db.execute(
        update(Device)
        .where(Device.id == device.id, Device.room_id.is_(None))
        .values(room_id=room_id)
    )
    if result.rowcount:
        device.room_id = room_id
        logger.info("Capteur %s lié à la salle %s (première télémétrie)", device.id, room_id)
        return True

    bound_room = db.execute(select(Device.room_id).where(Device.id == device.id)).scalar()
    return bound_room == room_id


def record_telemetry(
    db: Session,
    device: Device,
    room_id: int,
    temperature: float,
    humidity: float,
    measured_at: datetime,
    settings_store: SettingsStore,
    metadata: Optional[TelemetryMetadata] = None,
) -> TelemetryOutcome:
    """Valide et persiste un relevé. Voir l'ordre des contrôles en tête de module."""
    if not device.is_active:
        return _reject(device, room_id, TelemetryFailure.DEVICE_INACTIVE)
    if device.type != DeviceType.ROOM_SENSOR.value:
        return _reject(device, room_id, TelemetryFailure.INVALID_DEVICE)
    if db.get(Room, room_id) is None:
        return _reject(device, room_id, TelemetryFailure.ROOM_NOT_FOUND)
    if device.room_id is not None and device.room_id != room_id:
        return _reject(device, room_id, TelemetryFailure.ROOM_MISMATCH)

    profile = settings_store.hardware_profile(db)

    if device.room_id is None and not _bind_room(db, device, room_id):
        db.rollback()
        return _reject(device, room_id, TelemetryFailure.ROOM_MISMATCH)

    reading = TelemetryReading(
        device_id=device.id,
        room_id=room_id,
        temperature=temperature,
        humidity=humidity,
        reading_metadata=(metadata or TelemetryMetadata()).resolve(profile),
        measured_at=measured_at,
    )
    db.add(reading)
    db.commit()

    logger.debug("Relevé salle %s : %.2f °C, %.2f %%", room_id, temperature, humidity)
    return TelemetryOutcome.accepted()


def _reject(device: Device, room_id: int, reason: TelemetryFailure) -> TelemetryOutcome:
    logger.warning("Télémétrie rejetée : dispositif %s, salle %s (%s)", device.id, room_id, reason.value)
    return TelemetryOutcome.rejected(reason)
