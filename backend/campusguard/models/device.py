"""
Modèle SQLAlchemy pour les dispositifs IoT (portiques RFID et capteurs de salle).

Règles :
- GATEWAY : room_id toujours NULL
- ROOM_SENSOR : room_id NULL jusqu'à la première télémétrie acceptée, puis figé
  (seul un administrateur peut le réassigner)
"""

import enum

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, func

from campusguard.database import Base


class DeviceType(str, enum.Enum):
    GATEWAY = "GATEWAY"
    ROOM_SENSOR = "ROOM_SENSOR"


class Device(Base):
    """Matériel authentifié par un token porteur opaque."""
    __tablename__ = "devices"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(120), nullable=False)
    type = Column(String(20), nullable=False)  # GATEWAY, ROOM_SENSOR
    # Pas de ON DELETE : la BDD refuse la suppression d'une salle encore liée
    room_id = Column(Integer, ForeignKey("rooms.id"), nullable=True)
    token = Column(String(64), unique=True, nullable=False)  # "dev-" + 48 hex
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())
