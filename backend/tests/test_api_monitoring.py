"""
Tests d'intégration API des vues de monitoring et des exports.
"""

from datetime import datetime, timezone
from unittest.mock import patch

import pytest

from campusguard.main import app
from campusguard.models.monitoring import AccessResult
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
from campusguard.services.reading_classifier import ReadingStatus
from campusguard.services.settings_service import get_settings_store
from conftest import make_settings_store

NOW = datetime(2026, 3, 2, 10, 0, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def store():
    app.dependency_overrides[get_settings_store] = lambda: make_settings_store()
    yield
    app.dependency_overrides.pop(get_settings_store, None)


def make_reading(**kwargs) -> ReadingItem:
    return ReadingItem(
        id=kwargs.get("id", 1),
        room=NamedRef(id=3, name="Salle B12"),
        device=NamedRef(id=9, name="Capteur B12"),
        temperature=kwargs.get("temperature", 22.5),
        humidity=kwargs.get("humidity", 48.0),
        sensor_model="SHT31",
        i2c_address="0x44",
        measured_at=NOW,
        status=kwargs.get("status", ReadingStatus.OK),
    )


def make_event(**kwargs) -> AccessEventItem:
    return AccessEventItem(
        id=kwargs.get("id", 1),
        device=NamedRef(id=1, name="Portique principal"),
        student_id=42,
        result=kwargs.get("result", "DENY"),
        reason=kwargs.get("reason", "STUDENT_INACTIVE"),
        metadata={"card_uid": "04A1B2C3", "reader_model": "PN532"},
        occurred_at=NOW,
    )


# ============================================================
# Vues
# ============================================================

def test_overview(client):
    with patch("campusguard.routers.monitoring.monitoring_service.get_overview") as mock:
        mock.return_value = OverviewResponse(
            cards=OverviewCards(active_rooms=4, rooms_with_latest_reading=1, alerts=1, last_access_events=1),
            latest_readings=[LatestRoomReading(
                room_id=3, room_name="Salle B12", measured_at=NOW,
                device=NamedRef(id=9, name="Capteur B12"),
                temperature=31, humidity=50, status=ReadingStatus.CRITICAL,
            )],
            last_access_events=[make_event()],
        )

        response = client.get("/api/v1/monitoring/overview")

    assert response.status_code == 200
    assert response.json()["cards"]["alerts"] == 1
    assert response.json()["latest_readings"][0]["status"] == "CRITICAL"


def test_releves_filtres(client):
    with patch("campusguard.routers.monitoring.monitoring_service.list_readings") as mock:
        mock.return_value = ReadingListResponse(items=[make_reading()], total=1, page=1, per_page=30)

        response = client.get("/api/v1/monitoring/telemetry?room_id=3&interval=7d")

    assert response.status_code == 200
    assert response.json()["items"][0]["status"] == "OK"
    args = mock.call_args.args
    assert args[4] == 3
    assert args[-1] == "7d"


def test_releves_intervalle_invalide_400(client):
    response = client.get("/api/v1/monitoring/telemetry?interval=30d")

    assert response.status_code == 400


def test_evenements_acces_filtre_resultat(client):
    with patch("campusguard.routers.monitoring.monitoring_service.list_access_events") as mock:
        mock.return_value = AccessEventListResponse(items=[make_event()], total=1, page=1, per_page=20)

        response = client.get("/api/v1/monitoring/access-events?result=DENY&student_id=42")

    assert response.status_code == 200
    assert response.json()["items"][0]["reason"] == "STUDENT_INACTIVE"
    args = mock.call_args.args
    assert args[3] == 42
    assert args[5] == AccessResult.DENY


# ============================================================
# Exports
# ============================================================

def test_export_releves_csv(client):
    with patch("campusguard.services.export_service.monitoring_service.list_readings") as mock:
        mock.return_value = ReadingListResponse(items=[make_reading()], total=1, page=1, per_page=5000)

        response = client.get("/api/v1/monitoring/reports/telemetry?format=csv")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert "attachment; filename=telemetrie_" in response.headers["content-disposition"]
    body = response.content.decode("utf-8")
    assert body.startswith("\ufeffDate,Salle,Capteur")
    assert "Salle B12" in body
    assert "22.50" in body
    # Plafond du nombre de lignes exportées
    assert mock.call_args.args[3] == 5000


def test_export_evenements_pdf(client):
    with patch("campusguard.services.export_service.monitoring_service.list_access_events") as mock:
        mock.return_value = AccessEventListResponse(items=[make_event()], total=1, page=1, per_page=5000)

        response = client.get("/api/v1/monitoring/reports/access-events?format=pdf")

    assert response.status_code == 200
    assert response.headers["content-type"] == "application/pdf"
    assert response.content.startswith(b"%PDF-1.4")
    assert b"(04A1B2C3)" in response.content


def test_export_format_inconnu_400(client):
    response = client.get("/api/v1/monitoring/reports/telemetry?format=xlsx")

    assert response.status_code == 400
