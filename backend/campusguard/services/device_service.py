"""
Registre des dispositifs IoT : création, mise à jour, suppression, résolution par token.

Tokens :
- format "dev-" + 24 octets aléatoires en hexadécimal (48 caractères, 192 bits)
- unicité garantie par la contrainte UNIQUE de la colonne devices.token
- en cas de collision, nouvelle génération (3 tentatives au total) puis échec fatal
"""

import enum
import logging
import secrets
from dataclasses import dataclass
from typing import Callable, List, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from campusguard.config import settings
from campusguard.models.device import Device, DeviceType
from campusguard.models.monitoring import AccessEvent, TelemetryReading
from campusguard.models.room import Room
from campusguard.schemas.device import DeviceCreate, DeviceListItem, DeviceUpdate
from campusguard.schemas.monitoring import NamedRef

logger = logging.getLogger(__name__)

TOKEN_PREFIX = "dev-"
TOKEN_BYTES = 24

# SQLSTATE PostgreSQL unique_violation
UNIQUE_VIOLATION = "23505"


class DeviceNotFoundError(ValueError):
    """Aucun dispositif avec cet identifiant."""


class RoomNotFoundError(ValueError):
    """La salle référencée n'existe pas."""


class DeviceHasDependentsError(ValueError):
    """Suppression refusée : des événements ou relevés référencent le dispositif."""


class TokenAllocationError(RuntimeError):
    """Impossible d'allouer un token unique après le nombre maximal de tentatives."""


class TokenStatus(str, enum.Enum):
    NOT_FOUND = "NOT_FOUND"
    INACTIVE = "INACTIVE"
    OK = "OK"


@dataclass(frozen=True)
class TokenResolution:
    status: TokenStatus
    device: Optional[Device] = None


def generate_device_token() -> str:
    """Génère un token porteur opaque pour un dispositif."""
    return TOKEN_PREFIX + secrets.token_hex(TOKEN_BYTES)


def _is_unique_violation(exc: IntegrityError) -> bool:
    orig = exc.orig
    if getattr(orig, "pgcode", None) == UNIQUE_VIOLATION:
        return True
    return "UNIQUE" in str(orig).upper()


class DeviceRegistry:
    """Cycle de vie des dispositifs. La fabrique de tokens est injectable (tests)."""

    def __init__(
        self,
        token_factory: Callable[[], str] = generate_device_token,
        max_attempts: Optional[int] = None,
    ):
        self.token_factory = token_factory
        self.max_attempts = max_attempts or settings.DEVICE_TOKEN_MAX_ATTEMPTS

    def list_devices(
        self,
        db: Session,
        device_type: Optional[DeviceType] = None,
        room_id: Optional[int] = None,
        active: Optional[bool] = None,
    ) -> List[DeviceListItem]:
        """
        Liste les dispositifs triés par type puis par nom, avec filtres optionnels.

        Chaque ligne porte la salle liée ({id, name}) et le nombre d'événements
        d'accès et de relevés qui référencent le dispositif.
        """
        access_event_count = (
            select(func.count(AccessEvent.id))
            .where(AccessEvent.device_id == Device.id)
            .correlate(Device)
            .scalar_subquery()
        )
        reading_count = (
            select(func.count(TelemetryReading.id))
            .where(TelemetryReading.device_id == Device.id)
            .correlate(Device)
            .scalar_subquery()
        )

        query = select(Device, Room.name, access_event_count, reading_count).outerjoin(
            Room, Room.id == Device.room_id
        )
        if device_type is not None:
            query = query.where(Device.type == device_type.value)
        if room_id:
            query = query.where(Device.room_id == room_id)
        if active is not None:
            query = query.where(Device.is_active.is_(active))
        rows = db.execute(query.order_by(Device.type, Device.name)).all()

        return [
            DeviceListItem(
                id=device.id,
                name=device.name,
                type=device.type,
                room_id=device.room_id,
                token=device.token,
                is_active=device.is_active,
                created_at=device.created_at,
                updated_at=device.updated_at,
                room=NamedRef(id=device.room_id, name=room_name) if device.room_id is not None else None,
                access_event_count=events or 0,
                reading_count=readings or 0,
            )
            for device, room_name, events, readings in rows
        ]

    def get_device(self, db: Session, device_id: int) -> Device:
        device = db.get(Device, device_id)
        if device is None:
            raise DeviceNotFoundError(f"Dispositif {device_id} introuvable.")
        return device

    def create_device(self, db: Session, data: DeviceCreate) -> Device:
        """
        Enregistre un dispositif avec un token fraîchement généré.

        Un GATEWAY n'a jamais de salle (room_id forcé à NULL). Un ROOM_SENSOR peut
        être créé sans salle : il sera lié à sa première télémétrie acceptée.
        """
        room_id = data.room_id if data.type == DeviceType.ROOM_SENSOR else None
        if room_id is not None:
            self._ensure_room(db, room_id)

        for attempt in range(1, self.max_attempts + 1):
            device = Device(
                name=data.name,
                type=data.type.value,
                room_id=room_id,
                is_active=data.is_active,
                token=self.token_factory(),
            )
            db.add(device)
            try:
                db.commit()
            except IntegrityError as exc:
                db.rollback()
                if not _is_unique_violation(exc):
                    raise
                logger.warning("Collision de token à la création (tentative %d/%d)", attempt, self.max_attempts)
                continue

            db.refresh(device)
            logger.info("Dispositif %s créé (%s, salle %s)", device.id, device.type, device.room_id)
            return device

        raise TokenAllocationError("Impossible d'allouer un token de dispositif unique.")

    def update_device(self, db: Session, device_id: int, data: DeviceUpdate) -> Device:
        """
        Met à jour les champs fournis d'un dispositif.

        - passage en GATEWAY : room_id remis à NULL
        - regenerate_token : nouveau token (l'ancien est invalidé par la même écriture),
          avec la même boucle de tentatives qu'à la création
        """
        device = self.get_device(db, device_id)
        fields = data.model_dump(exclude_unset=True, exclude={"regenerate_token"})

        next_type = fields.get("type", DeviceType(device.type))
        if next_type == DeviceType.GATEWAY:
            fields["room_id"] = None
        elif fields.get("room_id") is not None:
            self._ensure_room(db, fields["room_id"])

        if "type" in fields:
            fields["type"] = fields["type"].value

        for attempt in range(1, self.max_attempts + 1):
            for field, value in fields.items():
                setattr(device, field, value)
            if data.regenerate_token:
                device.token = self.token_factory()
            try:
                db.commit()
            except IntegrityError as exc:
                db.rollback()
                if not (data.regenerate_token and _is_unique_violation(exc)):
                    raise
                logger.warning(
                    "Collision de token à la régénération du dispositif %s (tentative %d/%d)",
                    device_id, attempt, self.max_attempts,
                )
                continue

            db.refresh(device)
            if data.regenerate_token:
                logger.info("Token du dispositif %s régénéré", device_id)
            return device

        raise TokenAllocationError("Impossible de régénérer un token de dispositif unique.")

    def delete_device(self, db: Session, device_id: int) -> None:
        """
        Supprime un dispositif.

        La BDD refuse la suppression si des AccessEvent ou TelemetryReading le
        référencent : aucune cascade, DeviceHasDependentsError est levée.
        """
        device = self.get_device(db, device_id)
        db.delete(device)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            raise DeviceHasDependentsError(
                "Impossible de supprimer un dispositif ayant des événements ou relevés liés."
            )
        logger.info("Dispositif %s supprimé", device_id)

    def resolve_by_token(self, db: Session, token: str) -> TokenResolution:
        """
        Résout un token porteur.

        INACTIVE n'est jamais confondu avec NOT_FOUND : l'appelant doit refuser
        les deux (401/403).
        """
        device = db.execute(select(Device).where(Device.token == token)).scalar()
        if device is None:
            return TokenResolution(TokenStatus.NOT_FOUND)
        if not device.is_active:
            return TokenResolution(TokenStatus.INACTIVE, device)
        return TokenResolution(TokenStatus.OK, device)

    def _ensure_room(self, db: Session, room_id: int) -> None:
        if db.get(Room, room_id) is None:
            raise RoomNotFoundError(f"Salle {room_id} introuvable.")


# Instance unique construite au démarrage du processus
device_registry = DeviceRegistry()


def get_device_registry() -> DeviceRegistry:
    """Dépendance FastAPI : fournit le registre des dispositifs."""
    return device_registry
