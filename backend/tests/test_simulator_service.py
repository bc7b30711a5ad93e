"""
Tests unitaires et API du simulateur matériel.
"""

import random
from datetime import datetime, timezone
from unittest.mock import MagicMock, patch

import pytest
from pydantic import ValidationError

from campusguard.main import app
from campusguard.models.device import Device
from campusguard.models.monitoring import AccessResult
from campusguard.models.room import Room
from campusguard.schemas.simulator import SimulateAccessRequest, TelemetryBatchRequest
from campusguard.services import simulator_service
from campusguard.services.access_service import AccessOutcome, AccessReason
from campusguard.services.device_service import RoomNotFoundError, get_device_registry
from campusguard.services.settings_service import get_settings_store
from campusguard.services.telemetry_service import TelemetryFailure, TelemetryOutcome
from conftest import make_settings_store


def make_registry(device_type="ROOM_SENSOR"):
    registry = MagicMock()
    registry.get_device.return_value = Device(
        id=9, name="Capteur B12", type=device_type, room_id=3, token="dev-sensor", is_active=True,
    )
    return registry


def make_db(room=True):
    db = MagicMock()
    db.execute.return_value.scalar.return_value = Room(id=3, name="Salle B12", is_active=True) if room else None
    return db


def batch(**kwargs) -> TelemetryBatchRequest:
    data = {
        "room_id": 3,
        "device_id": 9,
        "base_temperature": 22,
        "base_humidity": 50,
        "variation": 1.5,
        "interval_seconds": 60,
        "quantity": 5,
    }
    data.update(kwargs)
    return TelemetryBatchRequest(**data)


# --- Schémas ---

@pytest.mark.parametrize("override", [
    {"quantity": 0},
    {"quantity": 61},
    {"variation": -1},
    {"interval_seconds": 0},
    {"base_temperature": 1000},
    {"base_humidity": 999, "variation": 5},
])
def test_lot_hors_bornes(override):
    with pytest.raises(ValidationError):
        batch(**override)


# --- generate_telemetry_batch ---

def test_lot_releves_espaces_et_bornes():
    with patch("campusguard.services.simulator_service.telemetry_service.record_telemetry") as mock:
        mock.return_value = TelemetryOutcome.accepted()

        result = simulator_service.generate_telemetry_batch(
            make_db(), batch(), make_registry(), make_settings_store(), rng=random.Random(4)
        )

    assert result.inserted == 5
    assert result.error is None
    calls = [c.args for c in mock.call_args_list]
    timestamps = [args[5] for args in calls]
    assert timestamps == sorted(timestamps)
    assert (timestamps[1] - timestamps[0]).total_seconds() == 60
    for args in calls:
        assert 20.5 <= args[3] <= 23.5
        assert 48.5 <= args[4] <= 51.5
    metadata = mock.call_args.kwargs["metadata"]
    assert metadata.sensor_model == "SHT31"
    assert metadata.i2c_address == "0x44"


def test_lot_arrete_au_premier_rejet():
    with patch("campusguard.services.simulator_service.telemetry_service.record_telemetry") as mock:
        mock.side_effect = [TelemetryOutcome.accepted(), TelemetryOutcome.rejected(TelemetryFailure.ROOM_MISMATCH)]

        result = simulator_service.generate_telemetry_batch(
            make_db(), batch(), make_registry(), make_settings_store()
        )

    assert result.inserted == 1
    assert result.error == "ROOM_MISMATCH"
    assert mock.call_count == 2


def test_lot_salle_inactive_ou_absente():
    with pytest.raises(RoomNotFoundError):
        simulator_service.generate_telemetry_batch(
            make_db(room=False), batch(), make_registry(), make_settings_store()
        )


# --- simulate_access ---

def test_acces_simule_utilise_le_profil():
    occurred_at = datetime(2026, 3, 2, 8, 0, tzinfo=timezone.utc)
    with patch("campusguard.services.simulator_service.access_service.evaluate_access") as mock:
        mock.return_value = AccessOutcome(AccessResult.ALLOW, AccessReason.OK, 5)

        outcome = simulator_service.simulate_access(
            MagicMock(),
            SimulateAccessRequest(device_id=1, student_id=42, card_uid="04a1b2c3", occurred_at=occurred_at),
            make_registry("GATEWAY"),
            make_settings_store(),
        )

    assert outcome.allowed
    assert mock.call_args.args[2] == 42
    assert mock.call_args.args[3] == occurred_at
    metadata = mock.call_args.kwargs["metadata"]
    assert metadata.card_uid == "04A1B2C3"
    assert metadata.reader_model == "PN532"


# --- API ---

@pytest.fixture
def overrides():
    registry = make_registry()
    app.dependency_overrides[get_device_registry] = lambda: registry
    app.dependency_overrides[get_settings_store] = lambda: make_settings_store()
    yield registry
    app.dependency_overrides.pop(get_device_registry, None)
    app.dependency_overrides.pop(get_settings_store, None)


def test_api_acces_simule(client, overrides):
    with patch("campusguard.routers.simulator.simulator_service.simulate_access") as mock:
        mock.return_value = AccessOutcome(AccessResult.DENY, AccessReason.STUDENT_NOT_FOUND, 5)

        response = client.post("/api/v1/monitoring/simulator/access", json={"device_id": 1, "student_id": 999})

    assert response.status_code == 200
    assert response.json()["reason"] == "STUDENT_NOT_FOUND"


def test_api_lot_salle_absente_400(client, overrides):
    with patch("campusguard.routers.simulator.simulator_service.generate_telemetry_batch") as mock:
        mock.side_effect = RoomNotFoundError("Salle introuvable ou inactive.")

        response = client.post("/api/v1/monitoring/simulator/telemetry-batch", json={
            "room_id": 3, "device_id": 9, "base_temperature": 22, "base_humidity": 50,
            "variation": 1, "interval_seconds": 60, "quantity": 10,
        })

    assert response.status_code == 400
