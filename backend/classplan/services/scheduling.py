"""Weekly class scheduling with room/teacher conflict resolution.

Every function here works inside the caller's ``Session`` and never commits:
the session is the unit of work, so class inserts and the CPR date
recalculation land (or roll back) together when the route commits.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
import logging
from typing import Iterable, Sequence

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from classplan.core.exceptions import ResourceNotFoundError, ScheduleConflictError, ScheduleValidationError
from classplan.models.class_session import ClassSession
from classplan.models.room import Room
from classplan.models.roster import Subject
from classplan.models.teacher import Teacher
from classplan.schemas.class_schedule import ClassUpdate, ScheduleItem, WeeklyScheduleCreate
from classplan.schemas.common import DAY_VALUES
from classplan.services.clock import as_utc, combine_local, format_slot, iter_days, overlaps, utcnow
from classplan.services.cpr_progress import find_sub_topic_for_lecture, recalculate_planned_dates

logger = logging.getLogger(__name__)

ROOM_CONFLICT = "room_conflict"
TEACHER_CONFLICT = "teacher_conflict"


@dataclass(frozen=True)
class ClassCandidate:
    start_at: datetime
    end_at: datetime
    lecture_number: int


@dataclass
class Booking:
    """An interval already claimed by a teacher and/or a room."""

    start_at: datetime
    end_at: datetime
    teacher_id: str
    room_id: str | None
    class_id: str | None = None


@dataclass
class ScheduleOutcome:
    subject: Subject
    teacher: Teacher
    room: Room | None
    classes: list[ClassSession] = field(default_factory=list)


def expand_weekly_template(
    items: Sequence[ScheduleItem],
    start_date: date,
    end_date: date,
    *,
    now: datetime | None = None,
) -> list[ClassCandidate]:
    """Turn a weekly template into concrete future class slots, ordered by day then item order."""
    cutoff = as_utc(now) if now is not None else utcnow()
    candidates: list[ClassCandidate] = []
    for day in iter_days(start_date, end_date):
        for item in items:
            if DAY_VALUES[item.day_of_week] != day.weekday():
                continue
            start_at = combine_local(day, item.start_time)
            if start_at < cutoff:
                continue
            candidates.append(
                ClassCandidate(
                    start_at=start_at,
                    end_at=combine_local(day, item.end_time),
                    lecture_number=item.lecture_number,
                )
            )
    return candidates


def load_bookings(
    db: Session,
    *,
    teacher_id: str,
    room_id: str | None,
    window_start: datetime,
    window_end: datetime,
    exclude_class_id: str | None = None,
) -> list[Booking]:
    owner_filter = ClassSession.teacher_id == teacher_id
    if room_id:
        owner_filter = or_(owner_filter, ClassSession.room_id == room_id)
    query = (
        select(ClassSession)
        .where(owner_filter)
        .where(ClassSession.start_at < window_end, ClassSession.end_at > window_start)
        .order_by(ClassSession.start_at.asc(), ClassSession.id.asc())
    )
    if exclude_class_id is not None:
        query = query.where(ClassSession.id != exclude_class_id)
    return [
        Booking(
            start_at=as_utc(row.start_at),
            end_at=as_utc(row.end_at),
            teacher_id=row.teacher_id,
            room_id=row.room_id,
            class_id=row.id,
        )
        for row in db.execute(query).scalars()
    ]


def _first_collision(
    start_at: datetime,
    end_at: datetime,
    bookings: Iterable[Booking],
    *,
    teacher_id: str,
    room_id: str | None,
) -> tuple[str, Booking] | None:
    clashing = [item for item in bookings if overlaps(start_at, end_at, item.start_at, item.end_at)]
    if room_id:
        for item in clashing:
            if item.room_id == room_id:
                return ROOM_CONFLICT, item
    for item in clashing:
        if item.teacher_id == teacher_id:
            return TEACHER_CONFLICT, item
    return None


def _conflict_error(conflict_type: str, start_at: datetime, lecture_number: int, booking: Booking) -> ScheduleConflictError:
    readable = format_slot(start_at)
    if conflict_type == ROOM_CONFLICT:
        message = f"Room conflict on {readable}"
    else:
        message = f"Teacher has a conflict on {readable}"
    return ScheduleConflictError(
        message,
        conflict_type=conflict_type,
        details={
            "slot": as_utc(start_at).isoformat(),
            "lecture_number": lecture_number,
            "conflicting_class_id": booking.class_id,
        },
    )


def validate_candidates(
    db: Session,
    candidates: Sequence[ClassCandidate],
    *,
    teacher_id: str,
    room_id: str | None,
) -> None:
    """Fail on the first candidate, in generation order, that overlaps an existing or earlier booking."""
    if not candidates:
        return
    bookings = load_bookings(
        db,
        teacher_id=teacher_id,
        room_id=room_id,
        window_start=min(item.start_at for item in candidates),
        window_end=max(item.end_at for item in candidates),
    )
    for candidate in candidates:
        collision = _first_collision(
            candidate.start_at,
            candidate.end_at,
            bookings,
            teacher_id=teacher_id,
            room_id=room_id,
        )
        if collision is not None:
            conflict_type, booking = collision
            raise _conflict_error(conflict_type, candidate.start_at, candidate.lecture_number, booking)
        bookings.append(
            Booking(
                start_at=candidate.start_at,
                end_at=candidate.end_at,
                teacher_id=teacher_id,
                room_id=room_id,
            )
        )


def lock_booking_owners(db: Session, *, teacher_id: str, room_id: str | None) -> None:
    # Serializes concurrent schedule writes per teacher/room on PostgreSQL; SQLite ignores FOR UPDATE.
    db.execute(select(Teacher.id).where(Teacher.id == teacher_id).with_for_update())
    if room_id:
        db.execute(select(Room.id).where(Room.id == room_id).with_for_update())


def _get_subject_and_teacher(db: Session, subject_id: str) -> tuple[Subject, Teacher]:
    subject = db.get(Subject, subject_id)
    if subject is None:
        raise ResourceNotFoundError("Subject", subject_id)
    teacher = db.get(Teacher, subject.teacher_id)
    if teacher is None:
        raise ResourceNotFoundError("Teacher", subject.teacher_id)
    return subject, teacher


def _get_room(db: Session, room_id: str | None) -> Room | None:
    if not room_id:
        return None
    room = db.get(Room, room_id)
    if room is None:
        raise ResourceNotFoundError("Room", room_id)
    return room


def schedule_weekly_classes(
    db: Session,
    payload: WeeklyScheduleCreate,
    *,
    now: datetime | None = None,
) -> ScheduleOutcome:
    subject, teacher = _get_subject_and_teacher(db, payload.subject_id)
    room = _get_room(db, payload.room_id)
    outcome = ScheduleOutcome(subject=subject, teacher=teacher, room=room)

    candidates = expand_weekly_template(payload.schedule_items, payload.start_date, payload.end_date, now=now)
    if not candidates:
        logger.info("No future slots for subject %s between %s and %s", subject.id, payload.start_date, payload.end_date)
        return outcome

    lock_booking_owners(db, teacher_id=teacher.id, room_id=payload.room_id)
    validate_candidates(db, candidates, teacher_id=teacher.id, room_id=payload.room_id)

    sub_topic_cache: dict[int, str | None] = {}
    for candidate in candidates:
        if candidate.lecture_number not in sub_topic_cache:
            sub_topic_cache[candidate.lecture_number] = find_sub_topic_for_lecture(
                db, subject.id, candidate.lecture_number
            )
        outcome.classes.append(
            ClassSession(
                subject_id=subject.id,
                division_id=subject.division_id,
                teacher_id=teacher.id,
                room_id=payload.room_id or None,
                start_at=candidate.start_at,
                end_at=candidate.end_at,
                lecture_number=candidate.lecture_number,
                sub_topic_id=sub_topic_cache[candidate.lecture_number],
            )
        )
    db.add_all(outcome.classes)
    db.flush()

    recalculate_planned_dates(db, subject.id)
    logger.info("Scheduled %d classes for subject %s", len(outcome.classes), subject.id)
    return outcome


def get_class_or_404(db: Session, class_id: str) -> ClassSession:
    record = db.get(ClassSession, class_id)
    if record is None:
        raise ResourceNotFoundError("Class", class_id)
    return record


def update_class(db: Session, class_id: str, payload: ClassUpdate) -> ClassSession:
    record = get_class_or_404(db, class_id)
    data = payload.model_dump(exclude_unset=True)

    new_start = as_utc(data["start_at"]) if data.get("start_at") is not None else as_utc(record.start_at)
    new_end = as_utc(data["end_at"]) if data.get("end_at") is not None else as_utc(record.end_at)
    new_room_id = data["room_id"] if "room_id" in data else record.room_id
    if new_end <= new_start:
        raise ScheduleValidationError("end_at must be after start_at", field="end_at")

    window_changed = data.get("start_at") is not None or data.get("end_at") is not None
    if window_changed or "room_id" in data:
        _get_room(db, new_room_id)
        lock_booking_owners(db, teacher_id=record.teacher_id, room_id=new_room_id)
        bookings = load_bookings(
            db,
            teacher_id=record.teacher_id,
            room_id=new_room_id,
            window_start=new_start,
            window_end=new_end,
            exclude_class_id=record.id,
        )
        collision = _first_collision(new_start, new_end, bookings, teacher_id=record.teacher_id, room_id=new_room_id)
        if collision is not None:
            conflict_type, booking = collision
            lecture_number = data.get("lecture_number") or record.lecture_number
            raise _conflict_error(conflict_type, new_start, lecture_number, booking)

    record.start_at = new_start
    record.end_at = new_end
    record.room_id = new_room_id or None
    if data.get("lecture_number") is not None:
        record.lecture_number = data["lecture_number"]
        record.sub_topic_id = find_sub_topic_for_lecture(db, record.subject_id, record.lecture_number)
    db.flush()

    recalculate_planned_dates(db, record.subject_id)
    return record


def delete_class(db: Session, class_id: str) -> ClassSession:
    record = get_class_or_404(db, class_id)
    subject_id = record.subject_id
    db.delete(record)
    db.flush()
    recalculate_planned_dates(db, subject_id)
    return record
