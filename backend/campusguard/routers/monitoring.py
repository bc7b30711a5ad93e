"""
Router des vues de monitoring : tableau de bord, relevés, événements d'accès.
Les clients rafraîchissent par interrogation périodique.
"""

from datetime import datetime
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from campusguard.database import get_db
from campusguard.models.monitoring import AccessResult
from campusguard.permissions import MONITORING_VIEW, require_permission
from campusguard.schemas.monitoring import AccessEventListResponse, OverviewResponse, ReadingListResponse
from campusguard.services import monitoring_service
from campusguard.services.settings_service import SettingsStore, get_settings_store

router = APIRouter(
    prefix="/api/v1/monitoring",
    tags=["Monitoring"],
    dependencies=[Depends(require_permission(MONITORING_VIEW))],
)


@router.get("/overview", response_model=OverviewResponse, summary="Tableau de bord du monitoring")
def get_overview(
    db: Session = Depends(get_db),
    settings_store: SettingsStore = Depends(get_settings_store),
):
    """Salles actives, dernier relevé par salle avec statut, alertes et derniers accès."""
    return monitoring_service.get_overview(db, settings_store)


@router.get("/telemetry", response_model=ReadingListResponse, summary="Relevés de télémétrie")
def list_telemetry(
    page: int = Query(1, ge=1),
    per_page: int = Query(30, ge=1, le=200),
    room_id: Optional[int] = None,
    device_id: Optional[int] = None,
    date_from: Optional[datetime] = Query(None, alias="from"),
    date_to: Optional[datetime] = Query(None, alias="to"),
    interval: Literal["24h", "7d"] = "24h",
    db: Session = Depends(get_db),
    settings_store: SettingsStore = Depends(get_settings_store),
):
    """Relevés les plus récents d'abord ; fenêtre 24h par défaut si `from` est absent."""
    return monitoring_service.list_readings(
        db, settings_store, page, per_page, room_id, device_id, date_from, date_to, interval
    )


@router.get("/access-events", response_model=AccessEventListResponse, summary="Événements d'accès RFID")
def list_access_events(
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=200),
    student_id: Optional[int] = None,
    device_id: Optional[int] = None,
    result: Optional[AccessResult] = None,
    date_from: Optional[datetime] = Query(None, alias="from"),
    date_to: Optional[datetime] = Query(None, alias="to"),
    db: Session = Depends(get_db),
):
    return monitoring_service.list_access_events(
        db, page, per_page, student_id, device_id, result, date_from, date_to
    )
