"""
Exports CSV / PDF des relevés de télémétrie et des événements d'accès.

Les lignes sont lues via monitoring_service (mêmes filtres que les écrans),
plafonnées à REPORT_MAX_ROWS, puis rendues par report_service.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session

from campusguard.config import settings
from campusguard.models.monitoring import AccessResult
from campusguard.services import monitoring_service, report_service
from campusguard.services.settings_service import SettingsStore

logger = logging.getLogger(__name__)

READING_HEADERS = ["Date", "Salle", "Capteur", "Température (°C)", "Humidité (%)", "Statut", "Modèle", "Adresse I2C"]
ACCESS_EVENT_HEADERS = ["Date", "Portique", "Élève", "Résultat", "Raison", "UID carte", "Lecteur"]


@dataclass(frozen=True)
class ExportFile:
    content: bytes
    media_type: str
    filename: str


def _fmt_datetime(value: Optional[datetime]) -> str:
    if value is None:
        return ""
    return value.strftime("%d/%m/%Y %H:%M:%S")


def _fmt_decimal(value: float) -> str:
    return f"{value:.2f}"


def _subtitle_lines(total: int, exported: int, filters: List[Tuple[str, object]]) -> List[str]:
    """En-tête du PDF : date de génération, volumes puis filtres appliqués (les vides sont omis)."""
    applied = [f"{label} : {value}" for label, value in filters if value is not None and value != ""]
    lines = [
        f"Généré le : {datetime.now().strftime('%d/%m/%Y %H:%M:%S')}",
        f"Total filtré : {total} | Exporté : {exported}",
    ]
    if total > exported:
        lines.append(f"Remarque : export limité à {settings.REPORT_MAX_ROWS} lignes.")
    lines.append("Filtres :")
    lines.extend(f"- {entry}" for entry in applied or ["Aucun filtre"])
    return lines


def _render(kind: str, fmt: str, title: str, headers: List[str], rows: List[List[str]], subtitles: List[str]) -> ExportFile:
    stamp = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")
    if fmt == "pdf":
        content = report_service.build_simple_table_pdf(title, headers, rows, subtitles)
        media_type = "application/pdf"
    else:
        content = report_service.build_csv(headers, rows).encode("utf-8")
        media_type = "text/csv; charset=utf-8"

    logger.info("Export %s (%s) : %d lignes", kind, fmt, len(rows))
    return ExportFile(content=content, media_type=media_type, filename=f"{kind}_{stamp}.{fmt}")


def export_readings(
    db: Session,
    settings_store: SettingsStore,
    fmt: str = "csv",
    room_id: Optional[int] = None,
    device_id: Optional[int] = None,
    date_from: Optional[datetime] = None,
    date_to: Optional[datetime] = None,
    interval: Optional[str] = None,
) -> ExportFile:
    listing = monitoring_service.list_readings(
        db, settings_store, 1, settings.REPORT_MAX_ROWS, room_id, device_id, date_from, date_to, interval
    )
    rows = [
        [
            _fmt_datetime(item.measured_at),
            item.room.name if item.room else "",
            item.device.name if item.device else "",
            _fmt_decimal(item.temperature),
            _fmt_decimal(item.humidity),
            item.status.value,
            item.sensor_model or "",
            item.i2c_address or "",
        ]
        for item in listing.items
    ]
    subtitles = _subtitle_lines(listing.total, len(rows), [
        ("Salle", room_id),
        ("Capteur", device_id),
        ("Du", _fmt_datetime(date_from)),
        ("Au", _fmt_datetime(date_to)),
        ("Intervalle", None if date_from else interval or "24h"),
    ])
    return _render("telemetrie", fmt, "Relevés de télémétrie", READING_HEADERS, rows, subtitles)


def export_access_events(
    db: Session,
    fmt: str = "csv",
    student_id: Optional[int] = None,
    device_id: Optional[int] = None,
    result: Optional[AccessResult] = None,
    date_from: Optional[datetime] = None,
    date_to: Optional[datetime] = None,
) -> ExportFile:
    listing = monitoring_service.list_access_events(
        db, 1, settings.REPORT_MAX_ROWS, student_id, device_id, result, date_from, date_to
    )
    rows = [
        [
            _fmt_datetime(item.occurred_at),
            item.device.name if item.device else "",
            str(item.student_id),
            item.result,
            item.reason,
            (item.metadata or {}).get("card_uid") or "",
            (item.metadata or {}).get("reader_model") or "",
        ]
        for item in listing.items
    ]
    subtitles = _subtitle_lines(listing.total, len(rows), [
        ("Élève", student_id),
        ("Portique", device_id),
        ("Résultat", result.value if result is not None else None),
        ("Du", _fmt_datetime(date_from)),
        ("Au", _fmt_datetime(date_to)),
    ])
    return _render("acces", fmt, "Événements d'accès RFID", ACCESS_EVENT_HEADERS, rows, subtitles)
