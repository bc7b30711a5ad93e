"""
Router du registre des dispositifs IoT (portiques et capteurs de salle).
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from campusguard.database import get_db
from campusguard.models.device import DeviceType
from campusguard.permissions import MONITORING_MANAGE, MONITORING_VIEW, require_permission
from campusguard.schemas.device import DeviceCreate, DeviceListResponse, DeviceResponse, DeviceUpdate
from campusguard.services.device_service import (
    DeviceHasDependentsError,
    DeviceNotFoundError,
    DeviceRegistry,
    RoomNotFoundError,
    TokenAllocationError,
    get_device_registry,
)

router = APIRouter(prefix="/api/v1/monitoring/devices", tags=["Dispositifs IoT"])


@router.get("", response_model=DeviceListResponse, summary="Lister les dispositifs",
            dependencies=[Depends(require_permission(MONITORING_VIEW))])
def list_devices(
    type: Optional[DeviceType] = None,
    room_id: Optional[int] = None,
    active: Optional[bool] = None,
    db: Session = Depends(get_db),
    registry: DeviceRegistry = Depends(get_device_registry),
):
    """Liste les dispositifs, filtrables par type, salle et statut."""
    return DeviceListResponse(items=registry.list_devices(db, type, room_id, active))


@router.get("/{device_id}", response_model=DeviceResponse, summary="Détail d'un dispositif",
            dependencies=[Depends(require_permission(MONITORING_VIEW))])
def get_device(
    device_id: int,
    db: Session = Depends(get_db),
    registry: DeviceRegistry = Depends(get_device_registry),
):
    try:
        return registry.get_device(db, device_id)
    except DeviceNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.post("", response_model=DeviceResponse, status_code=201, summary="Enregistrer un dispositif",
             dependencies=[Depends(require_permission(MONITORING_MANAGE))])
def create_device(
    data: DeviceCreate,
    db: Session = Depends(get_db),
    registry: DeviceRegistry = Depends(get_device_registry),
):
    """
    Enregistre un dispositif. Le token porteur est généré côté serveur et
    renvoyé dans la réponse.
    """
    try:
        return registry.create_device(db, data)
    except RoomNotFoundError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except TokenAllocationError as e:
        raise HTTPException(status_code=500, detail=str(e))


@router.put("/{device_id}", response_model=DeviceResponse, summary="Modifier un dispositif",
            dependencies=[Depends(require_permission(MONITORING_MANAGE))])
def update_device(
    device_id: int,
    data: DeviceUpdate,
    db: Session = Depends(get_db),
    registry: DeviceRegistry = Depends(get_device_registry),
):
    """Mise à jour partielle ; `regenerate_token: true` invalide l'ancien token."""
    try:
        return registry.update_device(db, device_id, data)
    except DeviceNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except RoomNotFoundError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except TokenAllocationError as e:
        raise HTTPException(status_code=500, detail=str(e))


@router.delete("/{device_id}", status_code=204, summary="Supprimer un dispositif",
               dependencies=[Depends(require_permission(MONITORING_MANAGE))])
def delete_device(
    device_id: int,
    db: Session = Depends(get_db),
    registry: DeviceRegistry = Depends(get_device_registry),
):
    """Refusé (409) si des événements d'accès ou relevés référencent le dispositif."""
    try:
        registry.delete_device(db, device_id)
    except DeviceNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except DeviceHasDependentsError as e:
        raise HTTPException(status_code=409, detail=str(e))
