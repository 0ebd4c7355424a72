"""Planned-date derivation for curriculum sub-topics.

The subject's classes, ordered by start time, are lecture slots 1..N. Walking
the curriculum in module/topic/sub-topic order, each sub-topic consumes
``lecture_count`` consecutive slots; its planned start and end are the start
times of the first and last slot it consumes.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
import logging
from typing import Sequence

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from classplan.models.class_session import ClassSession
from classplan.models.cpr import CprModule, CprSubTopic, CprTopic
from classplan.services.clock import as_utc

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CurriculumSlot:
    sub_topic_id: str
    position: int
    lecture_count: int
    first_lecture: int
    last_lecture: int


@dataclass(frozen=True)
class PlannedWindow:
    start: datetime | None
    end: datetime | None


def load_curriculum(db: Session, subject_id: str) -> list[CprSubTopic]:
    query = (
        select(CprSubTopic)
        .join(CprTopic, CprSubTopic.topic_id == CprTopic.id)
        .join(CprModule, CprTopic.module_id == CprModule.id)
        .where(CprModule.subject_id == subject_id)
        .order_by(CprModule.order.asc(), CprTopic.order.asc(), CprSubTopic.order.asc())
    )
    return list(db.execute(query).scalars())


def linearize(sub_topics: Sequence[CprSubTopic]) -> list[CurriculumSlot]:
    slots: list[CurriculumSlot] = []
    consumed = 0
    for position, sub_topic in enumerate(sub_topics, start=1):
        count = max(1, sub_topic.lecture_count)
        slots.append(
            CurriculumSlot(
                sub_topic_id=sub_topic.id,
                position=position,
                lecture_count=count,
                first_lecture=consumed + 1,
                last_lecture=consumed + count,
            )
        )
        consumed += count
    return slots


def find_sub_topic_for_lecture(db: Session, subject_id: str, lecture_number: int) -> str | None:
    for slot in linearize(load_curriculum(db, subject_id)):
        if slot.first_lecture <= lecture_number <= slot.last_lecture:
            return slot.sub_topic_id
    return None


def plan_windows(slot_starts: Sequence[datetime], lecture_counts: Sequence[int]) -> list[PlannedWindow]:
    """Assign lecture slots to sub-topics in order.

    A sub-topic that only gets part of its slots keeps the first available
    start and no end; one that gets none keeps neither.
    """
    windows: list[PlannedWindow] = []
    cursor = 0
    total = len(slot_starts)
    for count in lecture_counts:
        count = max(1, count)
        if cursor >= total:
            windows.append(PlannedWindow(start=None, end=None))
        elif cursor + count <= total:
            windows.append(PlannedWindow(start=slot_starts[cursor], end=slot_starts[cursor + count - 1]))
        else:
            windows.append(PlannedWindow(start=slot_starts[cursor], end=None))
        cursor += count
    return windows


def recalculate_planned_dates(db: Session, subject_id: str) -> int:
    """Recompute planned dates for every sub-topic of the subject; returns how many changed."""
    sub_topics = load_curriculum(db, subject_id)
    if not sub_topics:
        return 0

    slot_starts = [
        as_utc(value)
        for value in db.execute(
            select(ClassSession.start_at)
            .where(ClassSession.subject_id == subject_id)
            .order_by(ClassSession.start_at.asc(), ClassSession.id.asc())
        ).scalars()
    ]

    changed = 0
    windows = plan_windows(slot_starts, [item.lecture_count for item in sub_topics])
    for sub_topic, window in zip(sub_topics, windows):
        if as_utc(sub_topic.planned_start_date) == window.start and as_utc(sub_topic.planned_end_date) == window.end:
            continue
        sub_topic.planned_start_date = window.start
        sub_topic.planned_end_date = window.end
        changed += 1
    db.flush()
    logger.debug("Recalculated planned dates for subject %s (%d changed)", subject_id, changed)
    return changed


def clear_class_links(db: Session, subject_id: str) -> None:
    db.execute(
        update(ClassSession)
        .where(ClassSession.subject_id == subject_id, ClassSession.sub_topic_id.is_not(None))
        .values(sub_topic_id=None)
    )


def relink_classes(db: Session, subject_id: str) -> int:
    """Point every class of the subject at the sub-topic covering its lecture number."""
    slots = linearize(load_curriculum(db, subject_id))
    linked = 0
    classes = db.execute(select(ClassSession).where(ClassSession.subject_id == subject_id)).scalars()
    for record in classes:
        target = next(
            (slot.sub_topic_id for slot in slots if slot.first_lecture <= record.lecture_number <= slot.last_lecture),
            None,
        )
        record.sub_topic_id = target
        if target is not None:
            linked += 1
    db.flush()
    return linked
