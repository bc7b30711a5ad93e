"""
Tests unitaires de l'enregistreur de télémétrie : ordre des contrôles,
liaison à la première télémétrie, course entre deux premières télémétries.
"""

from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest

from campusguard.models.device import Device
from campusguard.models.monitoring import TelemetryReading
from campusguard.models.room import Room
from campusguard.services.telemetry_service import TelemetryFailure, TelemetryMetadata, record_telemetry
from conftest import make_settings_store

MEASURED_AT = datetime(2026, 3, 2, 10, 0, tzinfo=timezone.utc)


def make_sensor(**kwargs) -> Device:
    return Device(
        id=kwargs.get("id", 9),
        name="Capteur B12",
        type=kwargs.get("type", "ROOM_SENSOR"),
        room_id=kwargs.get("room_id"),
        token="dev-sensor",
        is_active=kwargs.get("is_active", True),
    )


def make_db(room_exists=True, bind_rowcount=1, bound_room=None):
    db = MagicMock()
    db.get.side_effect = lambda model, pk: Room(id=pk, name=f"Salle {pk}", is_active=True) if room_exists else None
    update_result = MagicMock(rowcount=bind_rowcount)
    select_result = MagicMock()
    select_result.scalar.return_value = bound_room
    db.execute.side_effect = [update_result, select_result]
    return db


def added_readings(db):
    return [call.args[0] for call in db.add.call_args_list if isinstance(call.args[0], TelemetryReading)]


def record(db, device, room_id, **kwargs):
    return record_telemetry(
        db, device, room_id,
        kwargs.get("temperature", 22.5),
        kwargs.get("humidity", 48.0),
        MEASURED_AT,
        make_settings_store(),
        metadata=kwargs.get("metadata"),
    )


def test_premiere_telemetrie_lie_la_salle_puis_refuse_une_autre():
    """Liaison sur la salle 3, puis ROOM_MISMATCH sur la salle 5 sans relevé."""
    sensor = make_sensor(room_id=None)
    db = make_db()

    first = record(db, sensor, 3)

    assert first.ok
    assert sensor.room_id == 3
    assert len(added_readings(db)) == 1

    db.add.reset_mock()
    second = record(db, sensor, 5)

    assert not second.ok
    assert second.reason == TelemetryFailure.ROOM_MISMATCH
    db.add.assert_not_called()


def test_capteur_deja_lie_meme_salle_accepte():
    sensor = make_sensor(room_id=3)
    db = make_db()

    outcome = record(db, sensor, 3)

    assert outcome.ok
    db.execute.assert_not_called()
    [reading] = added_readings(db)
    assert reading.room_id == 3
    assert reading.device_id == 9
    assert reading.measured_at == MEASURED_AT


def test_course_premiere_telemetrie_premier_commit_gagne():
    """Un autre appel a lié le capteur à la salle 7 entre la lecture et l'écriture."""
    sensor = make_sensor(room_id=None)
    db = make_db(bind_rowcount=0, bound_room=7)

    outcome = record(db, sensor, 3)

    assert outcome.reason == TelemetryFailure.ROOM_MISMATCH
    db.rollback.assert_called_once()
    db.add.assert_not_called()


def test_course_premiere_telemetrie_meme_salle_acceptee():
    sensor = make_sensor(room_id=None)
    db = make_db(bind_rowcount=0, bound_room=3)

    outcome = record(db, sensor, 3)

    assert outcome.ok
    assert len(added_readings(db)) == 1


@pytest.mark.parametrize("sensor, room_exists, expected", [
    (make_sensor(is_active=False), True, TelemetryFailure.DEVICE_INACTIVE),
    (make_sensor(type="GATEWAY"), True, TelemetryFailure.INVALID_DEVICE),
    (make_sensor(), False, TelemetryFailure.ROOM_NOT_FOUND),
    # Inactif ET mauvais type : le premier contrôle l'emporte
    (make_sensor(is_active=False, type="GATEWAY"), False, TelemetryFailure.DEVICE_INACTIVE),
])
def test_ordre_des_controles(sensor, room_exists, expected):
    db = make_db(room_exists=room_exists)

    outcome = record(db, sensor, 3)

    assert outcome.reason == expected
    db.add.assert_not_called()
    db.commit.assert_not_called()


def test_metadonnees_du_releve():
    sensor = make_sensor(room_id=3)
    db = make_db()

    record(db, sensor, 3, metadata=TelemetryMetadata(sensor_model="SHT35", i2c_address="0x45"))

    [reading] = added_readings(db)
    assert reading.reading_metadata == {
        "transport": "HTTP_REST",
        "connectivity": "WIFI",
        "sensor_model": "SHT35",
        "i2c_address": "0x45",
    }


def test_metadonnees_par_defaut_du_profil():
    sensor = make_sensor(room_id=3)
    db = make_db()

    record(db, sensor, 3)

    [reading] = added_readings(db)
    assert reading.reading_metadata["sensor_model"] == "SHT31"
    assert reading.reading_metadata["i2c_address"] == "0x44"
