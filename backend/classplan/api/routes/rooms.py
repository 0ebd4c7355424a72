from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from classplan.api.deps import get_current_user, get_db, require_roles
from classplan.models.class_session import ClassSession
from classplan.models.room import Room
from classplan.models.user import User, UserRole
from classplan.schemas.roster import RoomCreate, RoomOut

router = APIRouter()


@router.get("", response_model=list[RoomOut])
def list_rooms(current_user: User = Depends(get_current_user), db: Session = Depends(get_db)) -> list[RoomOut]:
    return list(db.execute(select(Room).order_by(Room.name)).scalars())


@router.post("", response_model=RoomOut, status_code=status.HTTP_201_CREATED)
def create_room(
    payload: RoomCreate,
    current_user: User = Depends(require_roles(UserRole.admin)),
    db: Session = Depends(get_db),
) -> RoomOut:
    existing = db.execute(select(Room).where(Room.name == payload.name)).scalar_one_or_none()
    if existing:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Room name already exists")
    room = Room(**payload.model_dump())
    db.add(room)
    db.commit()
    db.refresh(room)
    return room


@router.delete("/{room_id}")
def delete_room(
    room_id: str,
    current_user: User = Depends(require_roles(UserRole.admin)),
    db: Session = Depends(get_db),
) -> dict:
    room = db.get(Room, room_id)
    if room is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Room not found")
    booked = db.execute(select(ClassSession.id).where(ClassSession.room_id == room_id).limit(1)).first()
    if booked is not None:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Room still has scheduled classes")
    db.delete(room)
    db.commit()
    return {"success": True}
