"""
Router des paramètres de monitoring (seuils, déverrouillage, profil matériel).
"""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from campusguard.database import get_db
from campusguard.permissions import ADMIN_MONITORING_SETTINGS, require_permission
from campusguard.schemas.monitoring_settings import MonitoringSettingsResponse, MonitoringSettingsUpdate
from campusguard.services.settings_service import (
    SettingsStore,
    SettingsValidationError,
    get_settings_store,
    to_response,
)

router = APIRouter(
    prefix="/api/admin/monitoring-settings",
    tags=["Paramètres monitoring"],
    dependencies=[Depends(require_permission(ADMIN_MONITORING_SETTINGS))],
)


@router.get("", response_model=MonitoringSettingsResponse, summary="Lire les paramètres de monitoring")
def get_monitoring_settings(
    db: Session = Depends(get_db),
    settings_store: SettingsStore = Depends(get_settings_store),
):
    """Retourne les paramètres (créés avec les valeurs par défaut au premier appel)."""
    return to_response(settings_store.get_or_create(db))


@router.put("", response_model=MonitoringSettingsResponse, summary="Modifier les paramètres de monitoring")
def update_monitoring_settings(
    data: MonitoringSettingsUpdate,
    db: Session = Depends(get_db),
    settings_store: SettingsStore = Depends(get_settings_store),
):
    """
    Remplace les seuils et durées ; le profil matériel est fusionné partiellement.
    Les bornes min doivent être strictement inférieures aux bornes max.
    """
    try:
        return to_response(settings_store.update(db, data))
    except SettingsValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
