import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from classplan.api.deps import get_calendar_sync, get_current_user, get_db, require_roles
from classplan.models.class_session import ClassSession
from classplan.models.roster import Division, Subject
from classplan.models.teacher import Teacher
from classplan.models.user import User, UserRole
from classplan.schemas.roster import SubjectCreate, SubjectOut
from classplan.services.calendar_sync import CalendarSync, push_deleted_class
from classplan.services.cpr_sheet import delete_curriculum

router = APIRouter()

logger = logging.getLogger(__name__)


@router.get("", response_model=list[SubjectOut])
def list_subjects(
    teacher_id: str | None = None,
    division_id: str | None = None,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> list[SubjectOut]:
    query = select(Subject)
    if teacher_id:
        query = query.where(Subject.teacher_id == teacher_id)
    if division_id:
        query = query.where(Subject.division_id == division_id)
    return list(db.execute(query.order_by(Subject.code)).scalars())


@router.post("", response_model=SubjectOut, status_code=status.HTTP_201_CREATED)
def create_subject(
    payload: SubjectCreate,
    current_user: User = Depends(require_roles(UserRole.admin)),
    db: Session = Depends(get_db),
) -> SubjectOut:
    if db.get(Teacher, payload.teacher_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Teacher not found")
    if db.get(Division, payload.division_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Division not found")
    subject = Subject(**payload.model_dump())
    db.add(subject)
    db.commit()
    db.refresh(subject)
    return subject


@router.get("/{subject_id}", response_model=SubjectOut)
def get_subject(
    subject_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> SubjectOut:
    subject = db.get(Subject, subject_id)
    if subject is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Subject not found")
    return subject


@router.delete("/{subject_id}")
def delete_subject(
    subject_id: str,
    current_user: User = Depends(require_roles(UserRole.admin)),
    db: Session = Depends(get_db),
    calendar: CalendarSync = Depends(get_calendar_sync),
) -> dict:
    subject = db.get(Subject, subject_id)
    if subject is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Subject not found")
    synced = db.execute(
        select(ClassSession.id, ClassSession.teacher_id, ClassSession.calendar_event_id).where(
            ClassSession.subject_id == subject_id,
            ClassSession.calendar_event_id.is_not(None),
        )
    ).all()
    delete_curriculum(db, subject_id)
    removed = db.execute(delete(ClassSession).where(ClassSession.subject_id == subject_id)).rowcount
    db.delete(subject)
    db.commit()
    logger.info("Deleted subject %s with %d classes", subject_id, removed or 0)

    for class_id, teacher_id, event_id in synced:
        push_deleted_class(db, calendar, class_id=class_id, teacher_id=teacher_id, event_id=event_id)
    return {"success": True}
