"""
Schémas Pydantic pour le registre des dispositifs IoT.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from campusguard.models.device import DeviceType
from campusguard.schemas.monitoring import NamedRef


class DeviceCreate(BaseModel):
    """Corps de requête pour enregistrer un dispositif (token généré côté serveur)."""
    name: str
    type: DeviceType
    room_id: Optional[int] = Field(default=None, gt=0)  # Ignoré pour un GATEWAY
    is_active: bool = True

    @field_validator("name")
    @classmethod
    def name_not_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Le nom du dispositif ne peut pas être vide.")
        return v.strip()


class DeviceUpdate(BaseModel):
    """Mise à jour partielle : seuls les champs fournis sont modifiés."""
    name: Optional[str] = None
    type: Optional[DeviceType] = None
    room_id: Optional[int] = Field(default=None, gt=0)  # null explicite = délier la salle
    is_active: Optional[bool] = None
    regenerate_token: bool = False

    @field_validator("name")
    @classmethod
    def name_not_empty(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            raise ValueError("Le nom du dispositif ne peut pas être vide.")
        return v.strip() if v else v

    @model_validator(mode="after")
    def no_null_on_required_columns(self) -> "DeviceUpdate":
        # Seul room_id accepte un null explicite
        for field in ("name", "type", "is_active"):
            if field in self.model_fields_set and getattr(self, field) is None:
                raise ValueError(f"{field} ne peut pas être null.")
        return self


class DeviceResponse(BaseModel):
    """Dispositif complet, token inclus (réservé aux administrateurs)."""
    id: int
    name: str
    type: DeviceType
    room_id: Optional[int]
    token: str
    is_active: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class DeviceListItem(DeviceResponse):
    """Ligne de la liste : salle liée et volumes d'historique."""
    room: Optional[NamedRef] = None
    access_event_count: int = 0
    reading_count: int = 0


class DeviceListResponse(BaseModel):
    items: List[DeviceListItem]
