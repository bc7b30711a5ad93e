"""
Évaluateur d'accès RFID aux portiques.

Une décision par requête, terminale en une étape :
  1. Dispositif inactif            → DENY / DEVICE_INACTIVE
  2. Dispositif autre que GATEWAY  → DENY / INVALID_DEVICE
  3. Élève introuvable             → DENY / STUDENT_NOT_FOUND
  4. Élève inactif + restriction   → DENY / STUDENT_INACTIVE
  5. Sinon                         → ALLOW / OK

Chaque tentative produit exactement un AccessEvent, refus compris.
Les refus sont des valeurs de retour, jamais des exceptions.
"""

import enum
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from campusguard.models.device import Device, DeviceType
from campusguard.models.monitoring import AccessEvent, AccessResult
from campusguard.models.student import Student
from campusguard.schemas.monitoring_settings import HardwareProfile
from campusguard.services.settings_service import SettingsStore, normalize_hardware_profile

logger = logging.getLogger(__name__)


class AccessReason(str, enum.Enum):
    OK = "OK"
    STUDENT_NOT_FOUND = "STUDENT_NOT_FOUND"
    STUDENT_INACTIVE = "STUDENT_INACTIVE"
    DEVICE_INACTIVE = "DEVICE_INACTIVE"
    INVALID_DEVICE = "INVALID_DEVICE"


@dataclass(frozen=True)
class AccessMetadata:
    """Métadonnées fournies par le firmware ; les absentes viennent du profil matériel."""
    card_uid: Optional[str] = None
    reader_model: Optional[str] = None
    frequency_mhz: Optional[float] = None
    transport: Optional[str] = None
    connectivity: Optional[str] = None

    def resolve(self, profile: HardwareProfile) -> dict:
        resolved = {
            "transport": self.transport or profile.transport,
            "connectivity": self.connectivity or profile.connectivity,
            "reader_model": self.reader_model or profile.access.reader_model,
            "frequency_mhz": self.frequency_mhz or profile.access.frequency_mhz,
        }
        if self.card_uid:
            resolved["card_uid"] = self.card_uid
        return resolved


@dataclass(frozen=True)
class AccessOutcome:
    result: AccessResult
    reason: AccessReason
    # Toujours renvoyée ; seul le firmware décide de l'utiliser sur ALLOW
    unlock_duration_seconds: int

    @property
    def allowed(self) -> bool:
        return self.result == AccessResult.ALLOW


def _decide(db: Session, device: Device, student_id: int, allow_only_active: bool) -> AccessReason:
    if not device.is_active:
        return AccessReason.DEVICE_INACTIVE
    if device.type != DeviceType.GATEWAY.value:
        return AccessReason.INVALID_DEVICE

    student = db.get(Student, student_id)
    if student is None:
        return AccessReason.STUDENT_NOT_FOUND
    if allow_only_active and not student.is_active:
        return AccessReason.STUDENT_INACTIVE
    return AccessReason.OK


def evaluate_access(
    db: Session,
    device: Device,
    student_id: int,
    occurred_at: datetime,
    settings_store: SettingsStore,
    metadata: Optional[AccessMetadata] = None,
) -> AccessOutcome:
    """
    Décide ALLOW/DENY pour une tentative RFID et journalise l'événement.

    Le dispositif est normalement déjà résolu et actif (vérifié par l'appelant) ;
    un dispositif inactif reçoit tout de même un refus DEVICE_INACTIVE journalisé.
    """
    current = settings_store.get_or_create(db)
    profile = normalize_hardware_profile(current.hardware_profile)

    reason = _decide(db, device, student_id, current.allow_only_active_students)
    result = AccessResult.ALLOW if reason == AccessReason.OK else AccessResult.DENY

    event = AccessEvent(
        device_id=device.id,
        student_id=student_id,
        result=result.value,
        reason=reason.value,
        event_metadata=(metadata or AccessMetadata()).resolve(profile),
        occurred_at=occurred_at,
    )
    db.add(event)
    db.commit()

    if result == AccessResult.DENY:
        logger.warning("Accès refusé : élève %s, dispositif %s (%s)", student_id, device.id, reason.value)
    else:
        logger.info("Accès autorisé : élève %s, dispositif %s", student_id, device.id)

    return AccessOutcome(
        result=result,
        reason=reason,
        unlock_duration_seconds=current.unlock_duration_seconds,
    )
