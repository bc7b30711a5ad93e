"""
Router des salles surveillées.
"""

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from campusguard.database import get_db
from campusguard.permissions import MONITORING_MANAGE, MONITORING_VIEW, require_permission
from campusguard.schemas.room import RoomCreate, RoomListResponse, RoomResponse, RoomUpdate
from campusguard.services import room_service
from campusguard.services.device_service import RoomNotFoundError

router = APIRouter(prefix="/api/v1/monitoring/rooms", tags=["Salles"])


@router.get("", response_model=RoomListResponse, summary="Lister les salles",
            dependencies=[Depends(require_permission(MONITORING_VIEW))])
def list_rooms(
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    q: str = "",
    db: Session = Depends(get_db),
):
    """Liste paginée, avec nombre de capteurs et de relevés par salle."""
    return room_service.list_rooms(db, page, per_page, q.strip())


@router.get("/{room_id}", response_model=RoomResponse, summary="Détail d'une salle",
            dependencies=[Depends(require_permission(MONITORING_VIEW))])
def get_room(room_id: int, db: Session = Depends(get_db)):
    try:
        return room_service.get_room(db, room_id)
    except RoomNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.post("", response_model=RoomResponse, status_code=201, summary="Créer une salle",
             dependencies=[Depends(require_permission(MONITORING_MANAGE))])
def create_room(data: RoomCreate, db: Session = Depends(get_db)):
    return room_service.create_room(db, data)


@router.put("/{room_id}", response_model=RoomResponse, summary="Modifier une salle",
            dependencies=[Depends(require_permission(MONITORING_MANAGE))])
def update_room(room_id: int, data: RoomUpdate, db: Session = Depends(get_db)):
    try:
        return room_service.update_room(db, room_id, data)
    except RoomNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.delete("/{room_id}", status_code=204, summary="Supprimer une salle",
               dependencies=[Depends(require_permission(MONITORING_MANAGE))])
def delete_room(room_id: int, db: Session = Depends(get_db)):
    """Refusé (409) si des capteurs ou relevés sont liés à la salle."""
    try:
        room_service.delete_room(db, room_id)
    except RoomNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except room_service.RoomHasDependentsError as e:
        raise HTTPException(status_code=409, detail=str(e))
