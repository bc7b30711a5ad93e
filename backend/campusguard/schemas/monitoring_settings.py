"""
Schémas Pydantic pour les paramètres de monitoring et le profil matériel IoT.
Champs snake_case sur le fil, décimaux sérialisés en nombres JSON.
"""

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

SUPPORTED_SENSOR_MODELS = ["SHT31", "SHT35"]
SUPPORTED_READER_MODELS = ["PN532"]
I2C_ADDRESS_PATTERN = r"^0[xX][0-9A-Fa-f]{2}$"
# Colonnes Numeric(5, 2) : température, humidité et seuils
MEASURE_MIN = -999.99
MEASURE_MAX = 999.99

SensorModel = Literal["SHT31", "SHT35"]
ReaderModel = Literal["PN532"]


# --- Profil matériel (forme normalisée, stockée en JSON) ---

class TelemetryProfile(BaseModel):
    """Capteur I²C de salle (ESP32 + SHT3x)."""
    sensor_model: SensorModel = "SHT31"
    supported_sensor_models: List[str] = Field(default_factory=lambda: list(SUPPORTED_SENSOR_MODELS))
    i2c_address: str = "0x44"
    endpoint: str = "/api/iot/telemetry"


class AccessProfile(BaseModel):
    """Lecteur RFID du portique (ESP32 + PN532)."""
    reader_model: ReaderModel = "PN532"
    frequency_mhz: float = 13.56
    endpoint: str = "/api/iot/access"


class HardwareProfile(BaseModel):
    transport: Literal["HTTP_REST"] = "HTTP_REST"
    connectivity: Literal["WIFI"] = "WIFI"
    telemetry: TelemetryProfile = Field(default_factory=TelemetryProfile)
    access: AccessProfile = Field(default_factory=AccessProfile)


# --- Mise à jour administrative ---

class TelemetryProfileUpdate(BaseModel):
    sensor_model: Optional[SensorModel] = None
    i2c_address: Optional[str] = Field(default=None, pattern=I2C_ADDRESS_PATTERN)
    endpoint: Optional[str] = None

    @field_validator("endpoint")
    @classmethod
    def endpoint_not_empty(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            raise ValueError("L'endpoint de télémétrie ne peut pas être vide.")
        return v.strip() if v else v


class AccessProfileUpdate(BaseModel):
    reader_model: Optional[ReaderModel] = None
    frequency_mhz: Optional[float] = Field(default=None, gt=0)
    endpoint: Optional[str] = None

    @field_validator("endpoint")
    @classmethod
    def endpoint_not_empty(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            raise ValueError("L'endpoint d'accès ne peut pas être vide.")
        return v.strip() if v else v


class HardwareProfileUpdate(BaseModel):
    telemetry: Optional[TelemetryProfileUpdate] = None
    access: Optional[AccessProfileUpdate] = None


class MonitoringSettingsUpdate(BaseModel):
    """Corps de requête PUT /api/admin/monitoring-settings."""
    temp_min: float = Field(ge=MEASURE_MIN, le=MEASURE_MAX)
    temp_max: float = Field(ge=MEASURE_MIN, le=MEASURE_MAX)
    hum_min: float = Field(ge=MEASURE_MIN, le=MEASURE_MAX)
    hum_max: float = Field(ge=MEASURE_MIN, le=MEASURE_MAX)
    telemetry_interval_seconds: int = Field(gt=0)
    unlock_duration_seconds: int = Field(gt=0)
    allow_only_active_students: bool
    hardware_profile: Optional[HardwareProfileUpdate] = None

    @model_validator(mode="after")
    def bounds_ordered(self) -> "MonitoringSettingsUpdate":
        if self.temp_min >= self.temp_max:
            raise ValueError("temp_min doit être inférieur à temp_max.")
        if self.hum_min >= self.hum_max:
            raise ValueError("hum_min doit être inférieur à hum_max.")
        return self


class MonitoringSettingsResponse(BaseModel):
    """Réponse GET/PUT des paramètres de monitoring."""
    id: int
    temp_min: float
    temp_max: float
    hum_min: float
    hum_max: float
    telemetry_interval_seconds: int
    unlock_duration_seconds: int
    allow_only_active_students: bool
    hardware_profile: HardwareProfile
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}
