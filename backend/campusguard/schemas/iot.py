"""
Schémas Pydantic des endpoints d'ingestion matériels (portiques RFID, capteurs de salle).
"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator

from campusguard.schemas.monitoring_settings import (
    I2C_ADDRESS_PATTERN,
    MEASURE_MAX,
    MEASURE_MIN,
    ReaderModel,
    SensorModel,
)


class AccessRequest(BaseModel):
    """Corps de POST /api/iot/access (badge RFID présenté au portique)."""
    student_id: int = Field(gt=0)
    card_uid: Optional[str] = Field(default=None, pattern=r"^[0-9A-Fa-f]{4,32}$")
    reader_model: Optional[ReaderModel] = None
    frequency_mhz: Optional[float] = Field(default=None, gt=0)
    transport: Optional[Literal["HTTP_REST"]] = None
    connectivity: Optional[Literal["WIFI"]] = None
    occurred_at: Optional[datetime] = None  # ISO-8601 ; heure serveur si absent

    @field_validator("card_uid")
    @classmethod
    def card_uid_uppercase(cls, v: Optional[str]) -> Optional[str]:
        return v.upper() if v else v


class AccessResponse(BaseModel):
    result: Literal["ALLOW", "DENY"]
    reason: str
    unlock_duration_seconds: int


class TelemetryRequest(BaseModel):
    """Corps de POST /api/iot/telemetry (relevé SHT3x)."""
    room_id: int = Field(gt=0)
    temperature: float = Field(ge=MEASURE_MIN, le=MEASURE_MAX)
    humidity: float = Field(ge=MEASURE_MIN, le=MEASURE_MAX)
    sensor_model: Optional[SensorModel] = None
    i2c_address: Optional[str] = Field(default=None, pattern=I2C_ADDRESS_PATTERN)
    measured_at: Optional[datetime] = None

    @field_validator("temperature", "humidity")
    @classmethod
    def finite(cls, v: float) -> float:
        if v != v or v in (float("inf"), float("-inf")):
            raise ValueError("La valeur mesurée doit être un nombre fini.")
        return v


class TelemetryAccepted(BaseModel):
    status: Literal["OK"] = "OK"
