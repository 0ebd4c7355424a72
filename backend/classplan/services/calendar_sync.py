"""Best-effort push of scheduled classes to an external calendar.

The database write is authoritative. Everything in here runs after the
commit, item by item, and only logs when the provider fails.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
import logging
from typing import Protocol
import uuid

from sqlalchemy import select
from sqlalchemy.orm import Session

from classplan.core.config import get_settings
from classplan.models.class_session import ClassSession
from classplan.models.room import Room
from classplan.models.roster import Student, Subject
from classplan.models.teacher import Teacher
from classplan.services.clock import as_utc

logger = logging.getLogger(__name__)


@dataclass
class CalendarEvent:
    title: str
    start_at: datetime
    end_at: datetime
    description: str = ""
    attendees: list[str] = field(default_factory=list)
    location: str | None = None


class CalendarSync(Protocol):
    def create_event(self, teacher: Teacher, event: CalendarEvent) -> str: ...

    def update_event(self, teacher: Teacher, event_id: str, event: CalendarEvent) -> None: ...

    def delete_event(self, teacher: Teacher, event_id: str) -> None: ...


class LoggingCalendarSync:
    """Default provider: records what would be sent and hands back a local event id."""

    def create_event(self, teacher: Teacher, event: CalendarEvent) -> str:
        event_id = f"local-{uuid.uuid4().hex}"
        logger.info(
            "Calendar event %s for %s: %s (%s - %s, %d attendees)",
            event_id,
            teacher.email,
            event.title,
            event.start_at.isoformat(),
            event.end_at.isoformat(),
            len(event.attendees),
        )
        return event_id

    def update_event(self, teacher: Teacher, event_id: str, event: CalendarEvent) -> None:
        logger.info("Calendar event %s for %s updated: %s", event_id, teacher.email, event.title)

    def delete_event(self, teacher: Teacher, event_id: str) -> None:
        logger.info("Calendar event %s for %s deleted", event_id, teacher.email)


_default_calendar_sync = LoggingCalendarSync()


def get_default_calendar_sync() -> CalendarSync:
    return _default_calendar_sync


def sync_enabled_for(teacher: Teacher | None) -> bool:
    return bool(get_settings().calendar_sync_enabled and teacher is not None and teacher.calendar_sync_enabled)


def _division_emails(db: Session, division_id: str) -> list[str]:
    return list(
        db.execute(select(Student.email).where(Student.division_id == division_id).order_by(Student.email)).scalars()
    )


def build_event(subject: Subject, record: ClassSession, *, attendees: list[str], room: Room | None) -> CalendarEvent:
    return CalendarEvent(
        title=f"{subject.name} - Lecture {record.lecture_number}",
        description=f"Subject: {subject.name}\nLecture: {record.lecture_number}",
        start_at=as_utc(record.start_at),
        end_at=as_utc(record.end_at),
        attendees=attendees,
        location=room.name if room is not None else None,
    )


def push_created_classes(
    db: Session,
    provider: CalendarSync,
    *,
    subject: Subject,
    teacher: Teacher,
    room: Room | None,
    classes: list[ClassSession],
) -> int:
    """Create one event per class; returns how many were synced."""
    if not classes or not sync_enabled_for(teacher):
        return 0
    attendees = _division_emails(db, subject.division_id)
    synced = 0
    for record in classes:
        try:
            record.calendar_event_id = provider.create_event(
                teacher, build_event(subject, record, attendees=attendees, room=room)
            )
            db.commit()
            synced += 1
        except Exception:
            db.rollback()
            logger.warning("Failed to create calendar event for class %s", record.id, exc_info=True)
    return synced


def push_updated_class(db: Session, provider: CalendarSync, record: ClassSession) -> bool:
    if not record.calendar_event_id:
        return False
    teacher = db.get(Teacher, record.teacher_id)
    subject = db.get(Subject, record.subject_id)
    if subject is None or not sync_enabled_for(teacher):
        return False
    room = db.get(Room, record.room_id) if record.room_id else None
    try:
        provider.update_event(
            teacher,
            record.calendar_event_id,
            build_event(subject, record, attendees=_division_emails(db, record.division_id), room=room),
        )
    except Exception:
        logger.warning("Failed to update calendar event for class %s", record.id, exc_info=True)
        return False
    return True


def push_deleted_class(db: Session, provider: CalendarSync, *, class_id: str, teacher_id: str, event_id: str | None) -> bool:
    if not event_id:
        return False
    teacher = db.get(Teacher, teacher_id)
    if not sync_enabled_for(teacher):
        return False
    try:
        provider.delete_event(teacher, event_id)
    except Exception:
        logger.warning("Failed to delete calendar event %s for class %s", event_id, class_id, exc_info=True)
        return False
    return True
