from datetime import datetime, timedelta, timezone

from classplan.models.class_session import ClassSession
from classplan.models.cpr import CprStatus
from classplan.services.clock import as_utc
from classplan.services.cpr_progress import (
    PlannedWindow,
    find_sub_topic_for_lecture,
    linearize,
    load_curriculum,
    plan_windows,
    recalculate_planned_dates,
)
from conftest import make_curriculum, make_subject


def slot(day: int, hour: int = 3) -> datetime:
    return datetime(2030, 1, day, hour, 30, tzinfo=timezone.utc)


def add_classes(db, subject, *starts):
    records = [
        ClassSession(
            subject_id=subject.id,
            division_id=subject.division_id,
            teacher_id=subject.teacher_id,
            start_at=start,
            end_at=start + timedelta(hours=1),
            lecture_number=index,
        )
        for index, start in enumerate(starts, start=1)
    ]
    db.add_all(records)
    db.flush()
    return records


def windows_of(sub_topics):
    return [(as_utc(item.planned_start_date), as_utc(item.planned_end_date)) for item in sub_topics]


def test_plan_windows_handles_full_partial_and_missing_coverage():
    starts = [slot(7), slot(8), slot(9), slot(10)]

    windows = plan_windows(starts, [2, 1, 3, 1])

    assert windows == [
        PlannedWindow(start=slot(7), end=slot(8)),
        PlannedWindow(start=slot(9), end=slot(9)),
        PlannedWindow(start=slot(10), end=None),
        PlannedWindow(start=None, end=None),
    ]


def test_linearize_assigns_cumulative_lecture_ranges(db):
    subject = make_subject(db)
    make_curriculum(db, subject, [[[2, 1]], [[3]]])

    slots = linearize(load_curriculum(db, subject.id))

    assert [(item.first_lecture, item.last_lecture) for item in slots] == [(1, 2), (3, 3), (4, 6)]
    assert [item.position for item in slots] == [1, 2, 3]


def test_curriculum_is_walked_in_module_topic_sub_topic_order(db):
    subject = make_subject(db)
    sub_topics = make_curriculum(db, subject, [[[1], [1]], [[1, 1]]])

    loaded = load_curriculum(db, subject.id)

    assert [item.id for item in loaded] == [item.id for item in sub_topics]
    assert find_sub_topic_for_lecture(db, subject.id, 3) == sub_topics[2].id
    assert find_sub_topic_for_lecture(db, subject.id, 5) is None


def test_recalculate_assigns_slots_to_sub_topics(db):
    subject = make_subject(db)
    sub_topics = make_curriculum(db, subject, [[[2, 1, 3]]])
    add_classes(db, subject, slot(7), slot(8), slot(9), slot(10))

    changed = recalculate_planned_dates(db, subject.id)

    assert changed == 3
    assert windows_of(sub_topics) == [
        (slot(7), slot(8)),
        (slot(9), slot(9)),
        (slot(10), None),
    ]


def test_recalculate_is_idempotent(db):
    subject = make_subject(db)
    sub_topics = make_curriculum(db, subject, [[[2, 1, 3]]])
    add_classes(db, subject, slot(7), slot(8), slot(9), slot(10))
    recalculate_planned_dates(db, subject.id)
    before = windows_of(sub_topics)

    assert recalculate_planned_dates(db, subject.id) == 0
    assert windows_of(sub_topics) == before


def test_more_classes_complete_a_partial_sub_topic(db):
    subject = make_subject(db)
    sub_topics = make_curriculum(db, subject, [[[2, 1, 3]]])
    add_classes(db, subject, slot(7), slot(8), slot(9), slot(10))
    recalculate_planned_dates(db, subject.id)

    add_classes(db, subject, slot(11), slot(12))
    recalculate_planned_dates(db, subject.id)

    assert windows_of(sub_topics)[2] == (slot(10), slot(12))


def test_earlier_class_shifts_every_window(db):
    subject = make_subject(db)
    sub_topics = make_curriculum(db, subject, [[[2, 1, 3]]])
    add_classes(db, subject, slot(7), slot(8), slot(9), slot(10))
    recalculate_planned_dates(db, subject.id)

    add_classes(db, subject, slot(6))
    recalculate_planned_dates(db, subject.id)

    assert windows_of(sub_topics) == [
        (slot(6), slot(7)),
        (slot(8), slot(8)),
        (slot(9), None),
    ]


def test_classes_on_same_day_are_ordered_by_time(db):
    subject = make_subject(db)
    sub_topics = make_curriculum(db, subject, [[[1, 1]]])
    add_classes(db, subject, slot(7, hour=8), slot(7, hour=3))

    recalculate_planned_dates(db, subject.id)

    assert windows_of(sub_topics) == [
        (slot(7, hour=3), slot(7, hour=3)),
        (slot(7, hour=8), slot(7, hour=8)),
    ]


def test_removing_last_class_clears_planned_dates(db):
    subject = make_subject(db)
    sub_topics = make_curriculum(db, subject, [[[1, 2]]])
    records = add_classes(db, subject, slot(7))
    recalculate_planned_dates(db, subject.id)
    assert windows_of(sub_topics) == [(slot(7), slot(7)), (None, None)]

    db.delete(records[0])
    db.flush()

    assert recalculate_planned_dates(db, subject.id) == 1
    assert windows_of(sub_topics) == [(None, None), (None, None)]


def test_subject_without_classes_keeps_empty_dates(db):
    subject = make_subject(db)
    sub_topics = make_curriculum(db, subject, [[[1]]])

    assert recalculate_planned_dates(db, subject.id) == 0
    assert windows_of(sub_topics) == [(None, None)]


def test_subject_without_curriculum_is_a_no_op(db):
    subject = make_subject(db)
    add_classes(db, subject, slot(7))

    assert recalculate_planned_dates(db, subject.id) == 0


def test_recalculate_keeps_status_and_actual_dates(db):
    subject = make_subject(db)
    sub_topics = make_curriculum(db, subject, [[[1]]])
    started = datetime(2030, 1, 5, 10, 0, tzinfo=timezone.utc)
    sub_topics[0].status = CprStatus.IN_PROGRESS
    sub_topics[0].actual_start_date = started
    db.flush()
    add_classes(db, subject, slot(7))

    recalculate_planned_dates(db, subject.id)

    assert sub_topics[0].status == CprStatus.IN_PROGRESS
    assert as_utc(sub_topics[0].actual_start_date) == started
    assert sub_topics[0].actual_end_date is None


def test_other_subjects_are_not_touched(db):
    subject = make_subject(db)
    other = make_subject(db, code="MA101", name="Calculus")
    other_topics = make_curriculum(db, other, [[[1]]])
    make_curriculum(db, subject, [[[1]]])
    add_classes(db, subject, slot(7))

    recalculate_planned_dates(db, subject.id)

    assert other_topics[0].planned_start_date is None
