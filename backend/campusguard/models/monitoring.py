"""
Modèles SQLAlchemy du monitoring : paramètres globaux (singleton),
événements d'accès RFID et relevés de télémétrie.

AccessEvent et TelemetryReading sont append-only : jamais modifiés ni supprimés
par le moteur d'ingestion (piste d'audit).
"""

import enum

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    func,
)

from campusguard.database import Base


class AccessResult(str, enum.Enum):
    ALLOW = "ALLOW"
    DENY = "DENY"


class MonitoringSettings(Base):
    """Paramètres de monitoring : une seule ligne en base."""
    __tablename__ = "monitoring_settings"

    id = Column(Integer, primary_key=True, autoincrement=True)
    # Contrainte d'unicité garantissant le singleton en cas de création concurrente
    singleton = Column(Boolean, unique=True, nullable=False, default=True)

    temp_min = Column(Numeric(5, 2), nullable=False)
    temp_max = Column(Numeric(5, 2), nullable=False)
    hum_min = Column(Numeric(5, 2), nullable=False)
    hum_max = Column(Numeric(5, 2), nullable=False)
    telemetry_interval_seconds = Column(Integer, nullable=False)
    unlock_duration_seconds = Column(Integer, nullable=False)
    allow_only_active_students = Column(Boolean, nullable=False, default=True)
    hardware_profile = Column(JSON, nullable=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


class AccessEvent(Base):
    """Tentative d'accès RFID sur un portique, autorisée ou refusée."""
    __tablename__ = "access_events"

    id = Column(Integer, primary_key=True, autoincrement=True)
    device_id = Column(Integer, ForeignKey("devices.id"), nullable=False)
    student_id = Column(Integer, nullable=False)  # Pas de FK : un ID inconnu est journalisé aussi
    result = Column(String(10), nullable=False)   # ALLOW, DENY
    reason = Column(String(40), nullable=False)   # OK, STUDENT_NOT_FOUND, STUDENT_INACTIVE, ...
    # "metadata" est réservé par la déclarative SQLAlchemy
    event_metadata = Column("metadata", JSON, nullable=True)
    occurred_at = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class TelemetryReading(Base):
    """Relevé température / humidité d'un capteur de salle."""
    __tablename__ = "telemetry_readings"

    id = Column(Integer, primary_key=True, autoincrement=True)
    device_id = Column(Integer, ForeignKey("devices.id"), nullable=False)
    room_id = Column(Integer, ForeignKey("rooms.id"), nullable=False)
    temperature = Column(Numeric(5, 2), nullable=False)
    humidity = Column(Numeric(5, 2), nullable=False)
    reading_metadata = Column("metadata", JSON, nullable=True)
    measured_at = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
