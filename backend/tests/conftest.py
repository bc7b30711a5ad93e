"""
Configuration partagée pour tous les tests.
Override les dépendances get_db et get_current_user pour éviter toute connexion
réelle à PostgreSQL ; le balayage planifié n'est pas démarré.
"""

import os
import uuid
from decimal import Decimal
from unittest.mock import MagicMock

os.environ.setdefault("SCHEDULER_ENABLED", "false")

import pytest
from fastapi.testclient import TestClient

from campusguard.database import get_db
from campusguard.main import app
from campusguard.models.monitoring import MonitoringSettings
from campusguard.models.user import User
from campusguard.permissions import get_current_user
from campusguard.schemas.monitoring_settings import HardwareProfile


def make_user(role="ADMIN_TECH", is_active=True) -> User:
    return User(id=uuid.uuid4(), email=f"{role.lower()}@ecole.test", role=role, is_active=is_active)


def make_settings_row(**kwargs) -> MonitoringSettings:
    """Ligne MonitoringSettings aux valeurs par défaut, profil déjà normalisé."""
    return MonitoringSettings(
        id=kwargs.get("id", 1),
        singleton=True,
        temp_min=kwargs.get("temp_min", Decimal("20.00")),
        temp_max=kwargs.get("temp_max", Decimal("28.00")),
        hum_min=kwargs.get("hum_min", Decimal("40.00")),
        hum_max=kwargs.get("hum_max", Decimal("70.00")),
        telemetry_interval_seconds=kwargs.get("telemetry_interval_seconds", 60),
        unlock_duration_seconds=kwargs.get("unlock_duration_seconds", 5),
        allow_only_active_students=kwargs.get("allow_only_active_students", True),
        hardware_profile=kwargs.get("hardware_profile", HardwareProfile().model_dump()),
    )


def make_settings_store(row=None) -> MagicMock:
    """Store de paramètres injectable, renvoyant toujours la même ligne."""
    row = row or make_settings_row()
    store = MagicMock()
    store.get_or_create.return_value = row
    store.hardware_profile.return_value = HardwareProfile.model_validate(row.hardware_profile)
    return store


@pytest.fixture
def mock_db():
    return MagicMock()


@pytest.fixture
def client(mock_db):
    """Client HTTP de test avec la BDD mockée et un administrateur technique connecté."""
    app.dependency_overrides[get_db] = lambda: mock_db
    app.dependency_overrides[get_current_user] = lambda: make_user("ADMIN_TECH")
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
