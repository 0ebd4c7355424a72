from __future__ import annotations

from collections import defaultdict
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.orm import Session

from classplan.core.exceptions import ResourceNotFoundError
from classplan.models.cpr import CprModule, CprStatus, CprSubTopic, CprTopic
from classplan.models.roster import Subject
from classplan.models.teacher import Teacher
from classplan.schemas.cpr import (
    CprModuleOut,
    CprProgressOut,
    CprSubjectHeader,
    CprSubTopicOut,
    CprSummary,
    CprTopicOut,
    CprTreeOut,
)
from classplan.services.clock import as_utc, end_of_local_day, local_date, utcnow
from classplan.services.cpr_progress import linearize, load_curriculum


def get_subject_or_404(db: Session, subject_id: str) -> Subject:
    subject = db.get(Subject, subject_id)
    if subject is None:
        raise ResourceNotFoundError("Subject", subject_id)
    return subject


def summarize(sub_topics: list[CprSubTopic], *, module_count: int, topic_count: int) -> CprSummary:
    total = len(sub_topics)
    completed = sum(1 for item in sub_topics if item.status == CprStatus.COMPLETED)
    return CprSummary(
        total_modules=module_count,
        total_topics=topic_count,
        total_sub_topics=total,
        total_lectures=sum(item.lecture_count for item in sub_topics),
        completed_sub_topics=completed,
        in_progress_sub_topics=sum(1 for item in sub_topics if item.status == CprStatus.IN_PROGRESS),
        pending_sub_topics=sum(1 for item in sub_topics if item.status == CprStatus.PENDING),
        completion_percentage=round(completed / total * 100) if total else 0,
    )


def build_cpr_tree(db: Session, subject: Subject) -> CprTreeOut:
    modules = list(
        db.execute(
            select(CprModule).where(CprModule.subject_id == subject.id).order_by(CprModule.order.asc())
        ).scalars()
    )
    module_ids = [item.id for item in modules]
    topics = (
        list(
            db.execute(
                select(CprTopic).where(CprTopic.module_id.in_(module_ids)).order_by(CprTopic.order.asc())
            ).scalars()
        )
        if module_ids
        else []
    )
    sub_topics = load_curriculum(db, subject.id)

    sub_topics_by_topic: dict[str, list[CprSubTopicOut]] = defaultdict(list)
    for item in sub_topics:
        sub_topics_by_topic[item.topic_id].append(CprSubTopicOut.model_validate(item))
    topics_by_module: dict[str, list[CprTopicOut]] = defaultdict(list)
    for topic in topics:
        topics_by_module[topic.module_id].append(
            CprTopicOut(id=topic.id, name=topic.name, order=topic.order, sub_topics=sub_topics_by_topic[topic.id])
        )

    return CprTreeOut(
        subject=CprSubjectHeader(id=subject.id, name=subject.name, code=subject.code),
        summary=summarize(sub_topics, module_count=len(modules), topic_count=len(topics)),
        modules=[
            CprModuleOut(id=module.id, name=module.name, order=module.order, topics=topics_by_module[module.id])
            for module in modules
        ],
    )


def compute_progress(db: Session, subject: Subject, *, now: datetime | None = None) -> CprProgressOut:
    """Compare where the subject should be by today against what teachers marked complete."""
    sub_topics = load_curriculum(db, subject.id)
    slots = {slot.sub_topic_id: slot for slot in linearize(sub_topics)}
    cutoff = end_of_local_day(now or utcnow())

    expected = 0
    actual = 0
    late = 0
    on_time = 0
    for item in sub_topics:
        planned_start = as_utc(item.planned_start_date)
        actual_start = as_utc(item.actual_start_date)
        if planned_start is not None and planned_start <= cutoff:
            expected = max(expected, slots[item.id].last_lecture)
        if item.status == CprStatus.COMPLETED:
            actual += item.lecture_count
        if planned_start is not None and actual_start is not None:
            if local_date(actual_start) > local_date(planned_start):
                late += 1
            else:
                on_time += 1

    scheduled = late + on_time
    teacher = db.get(Teacher, subject.teacher_id)
    return CprProgressOut(
        subject_id=subject.id,
        subject_name=subject.name,
        teacher_name=teacher.name if teacher is not None else "N/A",
        expected_completion_lecture=expected,
        actual_completion_lecture=round(float(actual), 2),
        completion_lag=round(float(expected - actual), 2),
        punctuality_late_count=late,
        punctuality_on_time_count=on_time,
        total_scheduled_topics=scheduled,
        punctuality_percentage=round(on_time / scheduled * 100, 1) if scheduled else 100.0,
    )
