"""
Simulateur matériel (administrateurs) : rejoue une tentative RFID ou une série de
relevés pour un dispositif existant, sans passer par l'authentification par token.

Les métadonnées sont celles du profil matériel courant ; les décisions passent par
les mêmes évaluateurs que l'ingestion réelle.
"""

import logging
import random
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from campusguard.models.room import Room
from campusguard.schemas.simulator import SimulateAccessRequest, TelemetryBatchRequest, TelemetryBatchResult
from campusguard.services import access_service, telemetry_service
from campusguard.services.device_service import DeviceRegistry, RoomNotFoundError
from campusguard.services.settings_service import SettingsStore

logger = logging.getLogger(__name__)


def simulate_access(
    db: Session,
    data: SimulateAccessRequest,
    registry: DeviceRegistry,
    settings_store: SettingsStore,
) -> access_service.AccessOutcome:
    """Évalue une tentative RFID simulée sur le portique choisi (événement journalisé)."""
    device = registry.get_device(db, data.device_id)
    profile = settings_store.hardware_profile(db)

    return access_service.evaluate_access(
        db,
        device,
        data.student_id,
        data.occurred_at or datetime.now(timezone.utc),
        settings_store,
        metadata=access_service.AccessMetadata(
            card_uid=data.card_uid,
            reader_model=profile.access.reader_model,
            frequency_mhz=profile.access.frequency_mhz,
            transport=profile.transport,
            connectivity=profile.connectivity,
        ),
    )


def generate_telemetry_batch(
    db: Session,
    data: TelemetryBatchRequest,
    registry: DeviceRegistry,
    settings_store: SettingsStore,
    rng: Optional[random.Random] = None,
) -> TelemetryBatchResult:
    """
    Génère `quantity` relevés autour des valeurs de base (± variation), espacés de
    `interval_seconds` et se terminant maintenant.

    S'arrête au premier relevé rejeté et renvoie la raison.
    Lève RoomNotFoundError si la salle est absente ou inactive.
    """
    rng = rng or random.Random()

    room = db.execute(
        select(Room).where(Room.id == data.room_id, Room.is_active.is_(True))
    ).scalar()
    if room is None:
        raise RoomNotFoundError("Salle introuvable ou inactive.")

    device = registry.get_device(db, data.device_id)
    profile = settings_store.hardware_profile(db)
    metadata = telemetry_service.TelemetryMetadata(
        sensor_model=profile.telemetry.sensor_model,
        i2c_address=profile.telemetry.i2c_address,
        transport=profile.transport,
        connectivity=profile.connectivity,
    )

    now = datetime.now(timezone.utc)
    inserted = 0
    for index in range(data.quantity):
        measured_at = now - timedelta(seconds=(data.quantity - index - 1) * data.interval_seconds)
        outcome = telemetry_service.record_telemetry(
            db,
            device,
            data.room_id,
            round(data.base_temperature + rng.uniform(-1, 1) * data.variation, 2),
            round(data.base_humidity + rng.uniform(-1, 1) * data.variation, 2),
            measured_at,
            settings_store,
            metadata=metadata,
        )
        if not outcome.ok:
            return TelemetryBatchResult(inserted=inserted, error=outcome.reason.value)
        inserted += 1

    logger.info("Simulateur : %d relevés générés pour la salle %s", inserted, data.room_id)
    return TelemetryBatchResult(inserted=inserted)
