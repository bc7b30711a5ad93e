"""
Tests du balayage planifié des alertes de salle.
"""

from datetime import datetime, timezone
from unittest.mock import MagicMock, patch

from campusguard.schemas.monitoring import LatestRoomReading
from campusguard.scheduler import _sweep_room_alerts
from campusguard.services.reading_classifier import ReadingStatus

NOW = datetime(2026, 3, 2, 10, 0, tzinfo=timezone.utc)


def make_latest(room_id, status):
    return LatestRoomReading(
        room_id=room_id, room_name=f"Salle {room_id}", measured_at=NOW,
        device=None, temperature=22, humidity=50, status=status,
    )


def test_balayage_compte_les_salles_en_alerte(caplog):
    session = MagicMock()
    with patch("campusguard.scheduler.SessionLocal", return_value=session), \
         patch("campusguard.services.monitoring_service.latest_room_readings") as mock:
        mock.return_value = [
            make_latest(1, ReadingStatus.OK),
            make_latest(2, ReadingStatus.WARNING),
            make_latest(3, ReadingStatus.CRITICAL),
        ]

        with caplog.at_level("WARNING", logger="campusguard.scheduler"):
            alerts = _sweep_room_alerts()

    assert alerts == 2
    assert "Alerte CRITICAL salle 3" in caplog.text
    assert "salle 1 " not in caplog.text
    session.close.assert_called_once()


def test_balayage_erreur_journalisee_session_fermee():
    session = MagicMock()
    with patch("campusguard.scheduler.SessionLocal", return_value=session), \
         patch("campusguard.services.monitoring_service.latest_room_readings", side_effect=RuntimeError("BDD")):
        assert _sweep_room_alerts() == 0

    session.close.assert_called_once()
