"""
Service des paramètres de monitoring (seuils, durées, profil matériel IoT).

Le SettingsStore est construit une seule fois au démarrage et injecté dans les
évaluateurs (dépendance FastAPI get_settings_store) : aucun état global implicite,
les tests peuvent injecter leur propre instance.

Auto-réparation du profil matériel :
- normalize_hardware_profile() est une fonction pure (idempotente)
- le store réécrit la forme normalisée uniquement si elle diffère du stockage
"""

import logging
import re
from decimal import Decimal
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from campusguard.models.monitoring import MonitoringSettings
from campusguard.schemas.monitoring_settings import (
    SUPPORTED_READER_MODELS,
    SUPPORTED_SENSOR_MODELS,
    AccessProfile,
    HardwareProfile,
    MonitoringSettingsResponse,
    MonitoringSettingsUpdate,
    TelemetryProfile,
)

logger = logging.getLogger(__name__)

DEFAULT_MONITORING_SETTINGS = {
    "temp_min": Decimal("20.00"),
    "temp_max": Decimal("28.00"),
    "hum_min": Decimal("40.00"),
    "hum_max": Decimal("70.00"),
    "telemetry_interval_seconds": 60,
    "unlock_duration_seconds": 5,
    "allow_only_active_students": True,
}

_I2C_RE = re.compile(r"^0[xX]([0-9A-Fa-f]{2})$")


class SettingsValidationError(ValueError):
    """Bornes incohérentes (min >= max) à la mise à jour."""


def _section(raw: Any, *keys: str) -> dict:
    """Retourne le premier sous-objet dict trouvé parmi les clés, sinon {}."""
    if not isinstance(raw, dict):
        return {}
    for key in keys:
        value = raw.get(key)
        if isinstance(value, dict):
            return value
    return {}


def _first(raw: dict, *keys: str) -> Any:
    """Première valeur présente parmi les clés (snake_case puis camelCase historique)."""
    for key in keys:
        if key in raw:
            return raw[key]
    return None


def _clean_str(value: Any, default: str) -> str:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return default


def _clean_i2c(value: Any, default: str) -> str:
    if isinstance(value, str):
        match = _I2C_RE.match(value.strip())
        if match:
            return "0x" + match.group(1).upper()
    return default


def _clean_frequency(value: Any, default: float) -> float:
    if isinstance(value, bool):
        return default
    try:
        frequency = float(value)
    except (TypeError, ValueError):
        return default
    if frequency > 0 and frequency != float("inf"):
        return frequency
    return default


def normalize_hardware_profile(raw: Any) -> HardwareProfile:
    """
    Convertit un profil stocké (éventuellement obsolète ou malformé) en profil valide.

    Chaque champ invalide ou absent retombe sur sa valeur par défaut ; la liste des
    modèles de capteurs supportés est toujours réalignée sur l'ensemble courant.
    Les anciennes clés camelCase (sensorModel, i2cAddress, esp32.connectivity…)
    sont acceptées. Normaliser deux fois donne le même résultat.
    """
    telemetry_default = TelemetryProfile()
    access_default = AccessProfile()

    telemetry_raw = _section(raw, "telemetry")
    access_raw = _section(raw, "access")

    sensor_model = _first(telemetry_raw, "sensor_model", "sensorModel")
    if sensor_model not in SUPPORTED_SENSOR_MODELS:
        sensor_model = telemetry_default.sensor_model

    reader_model = _first(access_raw, "reader_model", "readerModel")
    if reader_model not in SUPPORTED_READER_MODELS:
        reader_model = access_default.reader_model

    return HardwareProfile(
        telemetry=TelemetryProfile(
            sensor_model=sensor_model,
            supported_sensor_models=list(SUPPORTED_SENSOR_MODELS),
            i2c_address=_clean_i2c(
                _first(telemetry_raw, "i2c_address", "i2cAddress"), telemetry_default.i2c_address
            ),
            endpoint=_clean_str(_first(telemetry_raw, "endpoint"), telemetry_default.endpoint),
        ),
        access=AccessProfile(
            reader_model=reader_model,
            frequency_mhz=_clean_frequency(
                _first(access_raw, "frequency_mhz", "frequencyMHz"), access_default.frequency_mhz
            ),
            endpoint=_clean_str(_first(access_raw, "endpoint"), access_default.endpoint),
        ),
    )


def to_response(row: MonitoringSettings) -> MonitoringSettingsResponse:
    """Sérialise la ligne de paramètres (décimaux → nombres JSON)."""
    return MonitoringSettingsResponse(
        id=row.id,
        temp_min=float(row.temp_min),
        temp_max=float(row.temp_max),
        hum_min=float(row.hum_min),
        hum_max=float(row.hum_max),
        telemetry_interval_seconds=row.telemetry_interval_seconds,
        unlock_duration_seconds=row.unlock_duration_seconds,
        allow_only_active_students=row.allow_only_active_students,
        hardware_profile=normalize_hardware_profile(row.hardware_profile),
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


class SettingsStore:
    """Accès au singleton MonitoringSettings, créé paresseusement."""

    def __init__(self, defaults: Optional[dict] = None):
        self.defaults = dict(defaults or DEFAULT_MONITORING_SETTINGS)

    def get_or_create(self, db: Session) -> MonitoringSettings:
        """
        Retourne le singleton, le crée avec les valeurs par défaut s'il n'existe pas.

        Le profil matériel est renormalisé à chaque lecture et réécrit en place
        s'il diffère de la forme stockée.
        Si deux requêtes créent la ligne en même temps, la contrainte d'unicité
        rejette la seconde : rollback puis relecture de la ligne gagnante.
        """
        row = self._find(db)
        if row is None:
            row = self._create(db)

        profile = normalize_hardware_profile(row.hardware_profile).model_dump()
        if row.hardware_profile != profile:
            logger.warning("Profil matériel des paramètres de monitoring réparé en place.")
            row.hardware_profile = profile
            db.commit()
            db.refresh(row)
        return row

    def hardware_profile(self, db: Session) -> HardwareProfile:
        """Profil matériel courant, toujours normalisé."""
        return normalize_hardware_profile(self.get_or_create(db).hardware_profile)

    def update(self, db: Session, data: MonitoringSettingsUpdate) -> MonitoringSettings:
        """
        Met à jour les paramètres (opération administrative, dernier écrivain gagnant).

        Lève SettingsValidationError si temp_min >= temp_max ou hum_min >= hum_max.
        Le profil matériel partiel est fusionné sur le profil courant puis normalisé.
        """
        if data.temp_min >= data.temp_max:
            raise SettingsValidationError("temp_min doit être inférieur à temp_max.")
        if data.hum_min >= data.hum_max:
            raise SettingsValidationError("hum_min doit être inférieur à hum_max.")

        row = self.get_or_create(db)

        merged = normalize_hardware_profile(row.hardware_profile).model_dump()
        if data.hardware_profile is not None:
            for section in ("telemetry", "access"):
                patch = getattr(data.hardware_profile, section)
                if patch is not None:
                    merged[section].update(patch.model_dump(exclude_none=True))

        row.temp_min = Decimal(str(data.temp_min))
        row.temp_max = Decimal(str(data.temp_max))
        row.hum_min = Decimal(str(data.hum_min))
        row.hum_max = Decimal(str(data.hum_max))
        row.telemetry_interval_seconds = data.telemetry_interval_seconds
        row.unlock_duration_seconds = data.unlock_duration_seconds
        row.allow_only_active_students = data.allow_only_active_students
        row.hardware_profile = normalize_hardware_profile(merged).model_dump()

        db.commit()
        db.refresh(row)

        logger.info(
            "Paramètres de monitoring mis à jour : temp %s–%s, hum %s–%s, déverrouillage %ds",
            data.temp_min, data.temp_max, data.hum_min, data.hum_max, data.unlock_duration_seconds,
        )
        return row

    def _find(self, db: Session) -> Optional[MonitoringSettings]:
        return db.execute(
            select(MonitoringSettings).order_by(MonitoringSettings.id).limit(1)
        ).scalar()

    def _create(self, db: Session) -> MonitoringSettings:
        row = MonitoringSettings(
            singleton=True,
            hardware_profile=HardwareProfile().model_dump(),
            **self.defaults,
        )
        db.add(row)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            existing = self._find(db)
            if existing is None:
                raise
            return existing
        db.refresh(row)
        logger.info("Paramètres de monitoring créés avec les valeurs par défaut.")
        return row


# Instance unique construite au démarrage du processus
settings_store = SettingsStore()


def get_settings_store() -> SettingsStore:
    """Dépendance FastAPI : fournit le store des paramètres de monitoring."""
    return settings_store
