from datetime import datetime

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from classplan.api.deps import get_calendar_sync, get_current_user, get_db, require_roles
from classplan.models.class_session import ClassSession
from classplan.models.cpr import CprSubTopic
from classplan.models.room import Room
from classplan.models.roster import Subject
from classplan.models.teacher import Teacher
from classplan.models.user import User, UserRole
from classplan.schemas.class_schedule import (
    ClassDetailOut,
    ClassListResponse,
    ClassOut,
    ClassUpdate,
    ScheduleResponse,
    WeeklyScheduleCreate,
)
from classplan.services.calendar_sync import (
    CalendarSync,
    push_created_classes,
    push_deleted_class,
    push_updated_class,
)
from classplan.services.clock import as_utc
from classplan.services.scheduling import delete_class, get_class_or_404, schedule_weekly_classes, update_class

router = APIRouter()


def _detail_query():
    return (
        select(ClassSession, Subject.name, Subject.code, Teacher.name, Room.name, CprSubTopic.name)
        .outerjoin(Subject, Subject.id == ClassSession.subject_id)
        .outerjoin(Teacher, Teacher.id == ClassSession.teacher_id)
        .outerjoin(Room, Room.id == ClassSession.room_id)
        .outerjoin(CprSubTopic, CprSubTopic.id == ClassSession.sub_topic_id)
    )


def _to_detail(row) -> ClassDetailOut:
    record, subject_name, subject_code, teacher_name, room_name, sub_topic_name = row
    return ClassDetailOut(
        **ClassOut.model_validate(record).model_dump(),
        subject_name=subject_name,
        subject_code=subject_code,
        teacher_name=teacher_name,
        room_name=room_name,
        sub_topic_name=sub_topic_name,
    )


@router.post("/schedule", response_model=ScheduleResponse, status_code=status.HTTP_201_CREATED)
def create_weekly_schedule(
    payload: WeeklyScheduleCreate,
    response: Response,
    current_user: User = Depends(require_roles(UserRole.admin)),
    db: Session = Depends(get_db),
    calendar: CalendarSync = Depends(get_calendar_sync),
) -> ScheduleResponse:
    outcome = schedule_weekly_classes(db, payload)
    if not outcome.classes:
        response.status_code = status.HTTP_200_OK
        return ScheduleResponse(message="No valid classes to schedule in the given range.", data=[])

    db.commit()
    push_created_classes(
        db,
        calendar,
        subject=outcome.subject,
        teacher=outcome.teacher,
        room=outcome.room,
        classes=outcome.classes,
    )
    return ScheduleResponse(
        message=f"Successfully created {len(outcome.classes)} classes.",
        data=[ClassOut.model_validate(item) for item in outcome.classes],
    )


@router.get("", response_model=ClassListResponse)
def list_classes(
    subject_id: str | None = Query(default=None),
    teacher_id: str | None = Query(default=None),
    division_id: str | None = Query(default=None),
    room_id: str | None = Query(default=None),
    start_from: datetime | None = Query(default=None),
    end_to: datetime | None = Query(default=None),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> ClassListResponse:
    query = _detail_query()
    if subject_id:
        query = query.where(ClassSession.subject_id == subject_id)
    if teacher_id:
        query = query.where(ClassSession.teacher_id == teacher_id)
    if division_id:
        query = query.where(ClassSession.division_id == division_id)
    if room_id:
        query = query.where(ClassSession.room_id == room_id)
    if start_from is not None:
        query = query.where(ClassSession.start_at >= as_utc(start_from))
    if end_to is not None:
        query = query.where(ClassSession.end_at <= as_utc(end_to))
    query = query.order_by(ClassSession.start_at.asc(), ClassSession.id.asc())

    items = [_to_detail(row) for row in db.execute(query).all()]
    return ClassListResponse(data=items, count=len(items))


@router.get("/{class_id}", response_model=ClassDetailOut)
def get_class(
    class_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> ClassDetailOut:
    get_class_or_404(db, class_id)
    row = db.execute(_detail_query().where(ClassSession.id == class_id)).one()
    return _to_detail(row)


@router.patch("/{class_id}", response_model=ClassOut)
def patch_class(
    class_id: str,
    payload: ClassUpdate,
    current_user: User = Depends(require_roles(UserRole.admin)),
    db: Session = Depends(get_db),
    calendar: CalendarSync = Depends(get_calendar_sync),
) -> ClassOut:
    record = update_class(db, class_id, payload)
    db.commit()
    db.refresh(record)
    push_updated_class(db, calendar, record)
    return ClassOut.model_validate(record)


@router.delete("/{class_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_class(
    class_id: str,
    current_user: User = Depends(require_roles(UserRole.admin)),
    db: Session = Depends(get_db),
    calendar: CalendarSync = Depends(get_calendar_sync),
) -> Response:
    record = get_class_or_404(db, class_id)
    teacher_id, event_id = record.teacher_id, record.calendar_event_id
    delete_class(db, class_id)
    db.commit()
    push_deleted_class(db, calendar, class_id=class_id, teacher_id=teacher_id, event_id=event_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
