"""
Tests unitaires des lectures de monitoring et du service des salles.
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import IntegrityError

from campusguard.models.monitoring import TelemetryReading
from campusguard.models.room import Room
from campusguard.services import monitoring_service, room_service
from campusguard.services.device_service import RoomNotFoundError
from campusguard.services.reading_classifier import ReadingStatus
from conftest import make_settings_store

NOW = datetime(2026, 3, 2, 10, 0, tzinfo=timezone.utc)


def make_reading(room_id, temperature, humidity) -> TelemetryReading:
    return TelemetryReading(
        id=room_id * 10,
        device_id=9,
        room_id=room_id,
        temperature=Decimal(str(temperature)),
        humidity=Decimal(str(humidity)),
        reading_metadata={"sensor_model": "SHT31", "i2c_address": "0x44"},
        measured_at=NOW,
    )


# --- interval_start ---

@pytest.mark.parametrize("interval, delta", [
    ("24h", timedelta(hours=24)),
    ("7d", timedelta(days=7)),
    (None, timedelta(hours=24)),
])
def test_debut_de_fenetre(interval, delta):
    assert monitoring_service.interval_start(interval, NOW) == NOW - delta


# --- latest_room_readings ---

def test_dernier_releve_par_salle_avec_statut():
    db = MagicMock()
    db.execute.return_value.scalars.return_value.all.return_value = [
        Room(id=1, name="Salle A", is_active=True),
        Room(id=2, name="Salle B", is_active=True),
        Room(id=3, name="Salle C", is_active=True),
    ]
    db.execute.return_value.first.side_effect = [
        (make_reading(1, 24, 50), "Capteur A"),
        None,  # salle sans relevé : omise
        (make_reading(3, 31, 50), "Capteur C"),
    ]

    latest = monitoring_service.latest_room_readings(db, make_settings_store())

    assert [item.room_id for item in latest] == [1, 3]
    assert latest[0].status == ReadingStatus.OK
    assert latest[1].status == ReadingStatus.CRITICAL
    assert latest[1].device.name == "Capteur C"
    assert latest[1].temperature == 31.0


def test_overview_compte_les_alertes():
    db = MagicMock()
    db.execute.return_value.scalar.return_value = 2
    db.execute.return_value.scalars.return_value.all.return_value = [
        Room(id=1, name="Salle A", is_active=True),
        Room(id=2, name="Salle B", is_active=True),
    ]
    db.execute.return_value.first.side_effect = [
        (make_reading(1, 24, 50), "Capteur A"),
        (make_reading(2, 24, 75), "Capteur B"),
    ]
    db.execute.return_value.all.return_value = []

    overview = monitoring_service.get_overview(db, make_settings_store())

    assert overview.cards.active_rooms == 2
    assert overview.cards.rooms_with_latest_reading == 2
    assert overview.cards.alerts == 1
    assert overview.cards.last_access_events == 0


def test_liste_des_releves_avec_statut():
    db = MagicMock()
    db.execute.return_value.scalar.return_value = 1
    db.execute.return_value.all.return_value = [(make_reading(3, 19.5, 50), "Salle C", "Capteur C")]

    listing = monitoring_service.list_readings(db, make_settings_store(), room_id=3)

    assert listing.total == 1
    [item] = listing.items
    assert item.status == ReadingStatus.WARNING
    assert item.room.name == "Salle C"
    assert item.sensor_model == "SHT31"


# --- room_service ---

def test_salle_introuvable():
    db = MagicMock()
    db.get.return_value = None

    with pytest.raises(RoomNotFoundError):
        room_service.get_room(db, 99)


def test_suppression_salle_avec_dependances():
    db = MagicMock()
    db.get.return_value = Room(id=3, name="Salle C", is_active=True)
    db.commit.side_effect = IntegrityError("DELETE", {}, Exception("violates foreign key constraint"))

    with pytest.raises(room_service.RoomHasDependentsError):
        room_service.delete_room(db, 3)
    db.rollback.assert_called_once()
