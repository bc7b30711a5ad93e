"""
Router des exports CSV / PDF du monitoring.
"""

from datetime import datetime
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response
from sqlalchemy.orm import Session

from campusguard.database import get_db
from campusguard.models.monitoring import AccessResult
from campusguard.permissions import MONITORING_VIEW, require_permission
from campusguard.services import export_service
from campusguard.services.settings_service import SettingsStore, get_settings_store

router = APIRouter(
    prefix="/api/v1/monitoring/reports",
    tags=["Exports monitoring"],
    dependencies=[Depends(require_permission(MONITORING_VIEW))],
)


def _attachment(export: export_service.ExportFile) -> Response:
    return Response(
        content=export.content,
        media_type=export.media_type,
        headers={"Content-Disposition": f"attachment; filename={export.filename}"},
    )


@router.get("/telemetry", summary="Exporter les relevés (CSV ou PDF)")
def export_telemetry(
    format: Literal["csv", "pdf"] = "csv",
    room_id: Optional[int] = None,
    device_id: Optional[int] = None,
    date_from: Optional[datetime] = Query(None, alias="from"),
    date_to: Optional[datetime] = Query(None, alias="to"),
    interval: Literal["24h", "7d"] = "24h",
    db: Session = Depends(get_db),
    settings_store: SettingsStore = Depends(get_settings_store),
):
    """CSV UTF-8 avec BOM (compatible Excel) ou PDF A4 paysage."""
    return _attachment(export_service.export_readings(
        db, settings_store, format, room_id, device_id, date_from, date_to, interval
    ))


@router.get("/access-events", summary="Exporter les événements d'accès (CSV ou PDF)")
def export_access_events(
    format: Literal["csv", "pdf"] = "csv",
    student_id: Optional[int] = None,
    device_id: Optional[int] = None,
    result: Optional[AccessResult] = None,
    date_from: Optional[datetime] = Query(None, alias="from"),
    date_to: Optional[datetime] = Query(None, alias="to"),
    db: Session = Depends(get_db),
):
    return _attachment(export_service.export_access_events(
        db, format, student_id, device_id, result, date_from, date_to
    ))
