from datetime import datetime, timedelta, timezone

from classplan.models.class_session import ClassSession
from classplan.models.cpr import CprStatus
from classplan.services.cpr_progress import recalculate_planned_dates
from classplan.services.cpr_report import build_cpr_tree, compute_progress
from classplan.services.cpr_status import set_sub_topic_status
from conftest import make_curriculum, make_subject


def schedule_days(db, subject, *days):
    for number, day in enumerate(days, start=1):
        start = datetime(2030, 1, day, 3, 30, tzinfo=timezone.utc)
        db.add(
            ClassSession(
                subject_id=subject.id,
                division_id=subject.division_id,
                teacher_id=subject.teacher_id,
                start_at=start,
                end_at=start + timedelta(hours=1),
                lecture_number=number,
            )
        )
    db.flush()
    recalculate_planned_dates(db, subject.id)


def test_progress_compares_plan_with_completed_lectures(db):
    subject = make_subject(db)
    sub_topics = make_curriculum(db, subject, [[[2, 1, 3]]])
    schedule_days(db, subject, 7, 8, 9, 10)
    set_sub_topic_status(db, sub_topics[0].id, CprStatus.COMPLETED, now=datetime(2030, 1, 7, 5, 0, tzinfo=timezone.utc))
    set_sub_topic_status(db, sub_topics[1].id, CprStatus.IN_PROGRESS, now=datetime(2030, 1, 10, 5, 0, tzinfo=timezone.utc))

    progress = compute_progress(db, subject, now=datetime(2030, 1, 9, 12, 0, tzinfo=timezone.utc))

    assert progress.teacher_name == "Asha Rao"
    assert progress.expected_completion_lecture == 3
    assert progress.actual_completion_lecture == 2
    assert progress.completion_lag == 1
    assert progress.punctuality_on_time_count == 1
    assert progress.punctuality_late_count == 1
    assert progress.total_scheduled_topics == 2
    assert progress.punctuality_percentage == 50.0


def test_progress_without_activity_is_fully_punctual(db):
    subject = make_subject(db)
    make_curriculum(db, subject, [[[1]]])

    progress = compute_progress(db, subject, now=datetime(2030, 1, 9, tzinfo=timezone.utc))

    assert progress.expected_completion_lecture == 0
    assert progress.actual_completion_lecture == 0
    assert progress.total_scheduled_topics == 0
    assert progress.punctuality_percentage == 100.0


def test_tree_summary_counts_statuses(db):
    subject = make_subject(db)
    sub_topics = make_curriculum(db, subject, [[[2, 1]], [[3]]])
    set_sub_topic_status(db, sub_topics[0].id, CprStatus.COMPLETED)
    set_sub_topic_status(db, sub_topics[1].id, CprStatus.IN_PROGRESS)

    tree = build_cpr_tree(db, subject)

    assert tree.subject.code == "CS201"
    assert [module.name for module in tree.modules] == ["Module 1", "Module 2"]
    assert [item.lecture_count for item in tree.modules[0].topics[0].sub_topics] == [2, 1]
    assert tree.summary.total_modules == 2
    assert tree.summary.total_topics == 2
    assert tree.summary.total_sub_topics == 3
    assert tree.summary.total_lectures == 6
    assert tree.summary.completed_sub_topics == 1
    assert tree.summary.in_progress_sub_topics == 1
    assert tree.summary.pending_sub_topics == 1
    assert tree.summary.completion_percentage == 33
