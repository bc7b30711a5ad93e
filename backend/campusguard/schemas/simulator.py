"""
Schémas Pydantic du simulateur matériel.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from campusguard.schemas.monitoring_settings import MEASURE_MAX, MEASURE_MIN


class SimulateAccessRequest(BaseModel):
    device_id: int = Field(gt=0)
    student_id: int = Field(gt=0)
    card_uid: Optional[str] = Field(default=None, pattern=r"^[0-9A-Fa-f]{4,32}$")
    occurred_at: Optional[datetime] = None

    @field_validator("card_uid")
    @classmethod
    def card_uid_uppercase(cls, v: Optional[str]) -> Optional[str]:
        return v.upper() if v else v


class TelemetryBatchRequest(BaseModel):
    room_id: int = Field(gt=0)
    device_id: int = Field(gt=0)
    base_temperature: float = Field(ge=MEASURE_MIN, le=MEASURE_MAX)
    base_humidity: float = Field(ge=MEASURE_MIN, le=MEASURE_MAX)
    variation: float = Field(ge=0)
    interval_seconds: int = Field(gt=0)
    quantity: int = Field(ge=1, le=60)

    @model_validator(mode="after")
    def generated_values_in_range(self) -> "TelemetryBatchRequest":
        for base in (self.base_temperature, self.base_humidity):
            if base - self.variation < MEASURE_MIN or base + self.variation > MEASURE_MAX:
                raise ValueError("Les valeurs générées dépasseraient la plage des relevés.")
        return self


class TelemetryBatchResult(BaseModel):
    inserted: int
    error: Optional[str] = None  # Raison du premier rejet (ROOM_MISMATCH, INVALID_DEVICE…)
