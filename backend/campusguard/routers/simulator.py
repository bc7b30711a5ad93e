"""
Router du simulateur matériel (administrateurs techniques).
"""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from campusguard.database import get_db
from campusguard.permissions import ADMIN_HARDWARE_SIMULATOR, require_permission
from campusguard.schemas.iot import AccessResponse
from campusguard.schemas.simulator import SimulateAccessRequest, TelemetryBatchRequest, TelemetryBatchResult
from campusguard.services import simulator_service
from campusguard.services.device_service import (
    DeviceNotFoundError,
    DeviceRegistry,
    RoomNotFoundError,
    get_device_registry,
)
from campusguard.services.settings_service import SettingsStore, get_settings_store

router = APIRouter(
    prefix="/api/v1/monitoring/simulator",
    tags=["Simulateur matériel"],
    dependencies=[Depends(require_permission(ADMIN_HARDWARE_SIMULATOR))],
)


@router.post("/access", response_model=AccessResponse, summary="Simuler un badge RFID")
def simulate_access(
    data: SimulateAccessRequest,
    db: Session = Depends(get_db),
    registry: DeviceRegistry = Depends(get_device_registry),
    settings_store: SettingsStore = Depends(get_settings_store),
):
    """Passe par l'évaluateur d'accès réel : l'événement est journalisé."""
    try:
        outcome = simulator_service.simulate_access(db, data, registry, settings_store)
    except DeviceNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return AccessResponse(
        result=outcome.result.value,
        reason=outcome.reason.value,
        unlock_duration_seconds=outcome.unlock_duration_seconds,
    )


@router.post("/telemetry-batch", response_model=TelemetryBatchResult, summary="Générer des relevés simulés")
def generate_telemetry_batch(
    data: TelemetryBatchRequest,
    db: Session = Depends(get_db),
    registry: DeviceRegistry = Depends(get_device_registry),
    settings_store: SettingsStore = Depends(get_settings_store),
):
    """
    Génère de 1 à 60 relevés autour des valeurs de base. Un rejet du
    capteur (ROOM_MISMATCH…) est renvoyé dans `error`, les relevés déjà
    insérés sont conservés.
    """
    try:
        return simulator_service.generate_telemetry_batch(db, data, registry, settings_store)
    except DeviceNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except RoomNotFoundError as e:
        raise HTTPException(status_code=400, detail=str(e))
