from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from classplan.api.deps import get_current_user, get_db, require_roles
from classplan.models.teacher import Teacher
from classplan.models.user import User, UserRole
from classplan.schemas.roster import TeacherCreate, TeacherOut

router = APIRouter()


@router.get("", response_model=list[TeacherOut])
def list_teachers(current_user: User = Depends(get_current_user), db: Session = Depends(get_db)) -> list[TeacherOut]:
    return list(db.execute(select(Teacher).order_by(Teacher.name)).scalars())


@router.post("", response_model=TeacherOut, status_code=status.HTTP_201_CREATED)
def create_teacher(
    payload: TeacherCreate,
    current_user: User = Depends(require_roles(UserRole.admin)),
    db: Session = Depends(get_db),
) -> TeacherOut:
    email = payload.email.lower()
    if db.execute(select(Teacher).where(Teacher.email == email)).scalar_one_or_none():
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Teacher email already exists")
    teacher = Teacher(name=payload.name, email=email, calendar_sync_enabled=payload.calendar_sync_enabled)
    db.add(teacher)
    db.commit()
    db.refresh(teacher)
    return teacher


@router.get("/{teacher_id}", response_model=TeacherOut)
def get_teacher(
    teacher_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> TeacherOut:
    teacher = db.get(Teacher, teacher_id)
    if teacher is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Teacher not found")
    return teacher
