"""
Contrôle des permissions du module de monitoring.

L'authentification (mot de passe, session) est faite en amont : la couche
d'authentification transmet l'identifiant de l'utilisateur dans l'en-tête
X-User-Id. Seul le rôle est lu ici.
"""

import logging
import uuid
from typing import Optional

from fastapi import Depends, Header, HTTPException
from sqlalchemy.orm import Session

from campusguard.database import get_db
from campusguard.models.user import User

logger = logging.getLogger(__name__)

MONITORING_VIEW = "MONITORING_VIEW"
MONITORING_MANAGE = "MONITORING_MANAGE"
ADMIN_MONITORING_SETTINGS = "ADMIN_MONITORING_SETTINGS"
ADMIN_HARDWARE_SIMULATOR = "ADMIN_HARDWARE_SIMULATOR"

ROLE_PERMISSIONS = {
    "ADMIN_TECH": {
        MONITORING_VIEW,
        MONITORING_MANAGE,
        ADMIN_MONITORING_SETTINGS,
        ADMIN_HARDWARE_SIMULATOR,
    },
    "DIRECTION": {MONITORING_VIEW, MONITORING_MANAGE, ADMIN_MONITORING_SETTINGS},
    "TEACHER": {MONITORING_VIEW},
    "OBSERVER": {MONITORING_VIEW},
}


def has_permission(user: Optional[User], code: str) -> bool:
    """Vrai si l'utilisateur est actif et que son rôle porte le code de permission."""
    if user is None or not user.is_active:
        return False
    return code in ROLE_PERMISSIONS.get(user.role, set())


def get_current_user(
    x_user_id: Optional[str] = Header(default=None),
    db: Session = Depends(get_db),
) -> User:
    """Dépendance FastAPI : résout l'utilisateur transmis par la couche d'authentification."""
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Authentification requise.")
    try:
        user_id = uuid.UUID(x_user_id)
    except ValueError:
        raise HTTPException(status_code=401, detail="Identifiant utilisateur invalide.")

    user = db.get(User, user_id)
    if user is None or not user.is_active:
        raise HTTPException(status_code=401, detail="Utilisateur inconnu ou inactif.")
    return user


def require_permission(code: str):
    """
    Fabrique de dépendance : refuse (403) si l'utilisateur courant n'a pas `code`.

    Usage : `user: User = Depends(require_permission(MONITORING_VIEW))`
    """

    def dependency(user: User = Depends(get_current_user)) -> User:
        if not has_permission(user, code):
            logger.warning("Permission %s refusée pour l'utilisateur %s (%s)", code, user.id, user.role)
            raise HTTPException(status_code=403, detail="Permission insuffisante.")
        return user

    return dependency
