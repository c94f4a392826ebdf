import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.api.deps import get_db, require_capability
from app.core.permissions import Capability
from app.models.room import Room
from app.models.schedule_template import ScheduleTemplate
from app.models.user import User
from app.schemas.room import RoomCreate, RoomOut, RoomUpdate

router = APIRouter()
logger = logging.getLogger(__name__)


def _load_room(db: Session, room_id: str) -> Room:
    room = db.get(Room, room_id)
    if room is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Room not found")
    return room


def _ensure_name_available(db: Session, name: str, *, ignore_id: str | None = None) -> None:
    query = select(Room.id).where(Room.name == name)
    if ignore_id is not None:
        query = query.where(Room.id != ignore_id)
    if db.execute(query.limit(1)).first() is not None:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Room name already exists")


def _ensure_unreferenced(db: Session, room: Room, action: str) -> None:
    # Templates refer to rooms by name, so a referenced room must keep its name.
    query = select(ScheduleTemplate.id).where(
        ScheduleTemplate.room == room.name,
        ScheduleTemplate.deactivated_at.is_(None),
    )
    if db.execute(query.limit(1)).first() is not None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Room is referenced by schedule templates and cannot be {action}",
        )


@router.get("/", response_model=list[RoomOut])
def list_rooms(
    building: str | None = Query(default=None),
    current_user: User = Depends(require_capability(Capability.reference_read)),
    db: Session = Depends(get_db),
) -> list[RoomOut]:
    query = select(Room)
    if building:
        query = query.where(Room.building == building)
    return list(db.execute(query.order_by(Room.name)).scalars())


@router.post("/", response_model=RoomOut, status_code=status.HTTP_201_CREATED)
def create_room(
    payload: RoomCreate,
    current_user: User = Depends(require_capability(Capability.reference_manage)),
    db: Session = Depends(get_db),
) -> RoomOut:
    _ensure_name_available(db, payload.name)
    room = Room(**payload.model_dump())
    db.add(room)
    db.commit()
    db.refresh(room)
    logger.info("Room %s created by %s", room.name, current_user.id)
    return room


@router.put("/{room_id}", response_model=RoomOut)
def update_room(
    room_id: str,
    payload: RoomUpdate,
    current_user: User = Depends(require_capability(Capability.reference_manage)),
    db: Session = Depends(get_db),
) -> RoomOut:
    room = _load_room(db, room_id)
    changes = payload.model_dump(exclude_unset=True)
    renamed = changes.get("name", room.name) != room.name
    if renamed:
        _ensure_name_available(db, changes["name"], ignore_id=room.id)
        _ensure_unreferenced(db, room, "renamed")

    for field_name, value in changes.items():
        setattr(room, field_name, value)
    db.commit()
    db.refresh(room)
    return room


@router.delete("/{room_id}")
def delete_room(
    room_id: str,
    current_user: User = Depends(require_capability(Capability.reference_manage)),
    db: Session = Depends(get_db),
) -> dict:
    room = _load_room(db, room_id)
    _ensure_unreferenced(db, room, "deleted")
    db.delete(room)
    db.commit()
    logger.info("Room %s deleted by %s", room_id, current_user.id)
    return {"success": True}
