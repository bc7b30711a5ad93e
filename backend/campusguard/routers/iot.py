"""
Router d'ingestion matérielle : portiques RFID (GATEWAY) et capteurs de salle (ROOM_SENSOR).

Les dispositifs s'authentifient par token porteur (Authorization: Bearer <token>).
"""

from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from campusguard.database import get_db
from campusguard.models.device import Device
from campusguard.schemas.iot import AccessRequest, AccessResponse, TelemetryAccepted, TelemetryRequest
from campusguard.services import access_service, telemetry_service
from campusguard.services.device_service import DeviceRegistry, TokenStatus, get_device_registry
from campusguard.services.settings_service import SettingsStore, get_settings_store

router = APIRouter(prefix="/api/iot", tags=["Ingestion IoT"])

# Refus d'accès renvoyés en 403 (problème du dispositif, pas de l'élève)
DEVICE_DENY_REASONS = {
    access_service.AccessReason.INVALID_DEVICE,
    access_service.AccessReason.DEVICE_INACTIVE,
}


def extract_bearer_token(authorization: Optional[str]) -> Optional[str]:
    """Extrait le token d'un en-tête `Bearer <token>` (schéma insensible à la casse)."""
    if not authorization:
        return None
    scheme, _, token = authorization.strip().partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def get_authenticated_device(
    authorization: Optional[str] = Header(default=None),
    db: Session = Depends(get_db),
    registry: DeviceRegistry = Depends(get_device_registry),
) -> Device:
    """Dépendance FastAPI : 401 si le token est absent ou inconnu, 403 si le dispositif est inactif."""
    token = extract_bearer_token(authorization)
    if token is None:
        raise HTTPException(status_code=401, detail="Token dispositif manquant.")

    resolution = registry.resolve_by_token(db, token)
    if resolution.status == TokenStatus.NOT_FOUND:
        raise HTTPException(status_code=401, detail="Token dispositif invalide.")
    if resolution.status == TokenStatus.INACTIVE:
        raise HTTPException(status_code=403, detail=access_service.AccessReason.DEVICE_INACTIVE.value)
    return resolution.device


@router.post("/access", response_model=AccessResponse, summary="Tentative d'accès RFID")
def post_access(
    data: AccessRequest,
    device: Device = Depends(get_authenticated_device),
    db: Session = Depends(get_db),
    settings_store: SettingsStore = Depends(get_settings_store),
):
    """
    Évalue un badge présenté au portique et journalise l'événement.

    Un refus lié à l'élève est une réponse 200 (result = DENY) ; un refus lié au
    dispositif (INVALID_DEVICE, DEVICE_INACTIVE) répond 403 avec le même corps.
    """
    outcome = access_service.evaluate_access(
        db,
        device,
        data.student_id,
        data.occurred_at or datetime.now(timezone.utc),
        settings_store,
        metadata=access_service.AccessMetadata(
            card_uid=data.card_uid,
            reader_model=data.reader_model,
            frequency_mhz=data.frequency_mhz,
            transport=data.transport,
            connectivity=data.connectivity,
        ),
    )
    payload = AccessResponse(
        result=outcome.result.value,
        reason=outcome.reason.value,
        unlock_duration_seconds=outcome.unlock_duration_seconds,
    )
    if outcome.reason in DEVICE_DENY_REASONS:
        return JSONResponse(status_code=403, content=payload.model_dump())
    return payload


@router.post("/telemetry", response_model=TelemetryAccepted, summary="Relevé température / humidité")
def post_telemetry(
    data: TelemetryRequest,
    device: Device = Depends(get_authenticated_device),
    db: Session = Depends(get_db),
    settings_store: SettingsStore = Depends(get_settings_store),
):
    """
    Enregistre un relevé. Le premier relevé accepté lie un capteur encore libre à la salle.

    403 : dispositif inactif ou non ROOM_SENSOR.
    400 : salle introuvable ou capteur déjà lié à une autre salle.
    """
    outcome = telemetry_service.record_telemetry(
        db,
        device,
        data.room_id,
        data.temperature,
        data.humidity,
        data.measured_at or datetime.now(timezone.utc),
        settings_store,
        metadata=telemetry_service.TelemetryMetadata(
            sensor_model=data.sensor_model,
            i2c_address=data.i2c_address,
        ),
    )
    if outcome.ok:
        return TelemetryAccepted()
    if outcome.reason in (
        telemetry_service.TelemetryFailure.INVALID_DEVICE,
        telemetry_service.TelemetryFailure.DEVICE_INACTIVE,
    ):
        raise HTTPException(status_code=403, detail=outcome.reason.value)
    raise HTTPException(status_code=400, detail=outcome.reason.value)
