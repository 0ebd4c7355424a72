from datetime import datetime, timezone

import pytest

from classplan.core.exceptions import ResourceNotFoundError
from classplan.models.cpr import CprStatus
from classplan.services.clock import as_utc
from classplan.services.cpr_status import set_sub_topic_status
from conftest import make_curriculum, make_subject

FIRST = datetime(2030, 1, 7, 5, 0, tzinfo=timezone.utc)
LATER = datetime(2030, 1, 9, 6, 0, tzinfo=timezone.utc)


@pytest.fixture()
def sub_topic(db):
    subject = make_subject(db)
    return make_curriculum(db, subject, [[[2]]])[0]


def test_completing_untouched_sub_topic_sets_both_dates(db, sub_topic):
    updated = set_sub_topic_status(db, sub_topic.id, CprStatus.COMPLETED, now=FIRST)

    assert updated.status == CprStatus.COMPLETED
    assert as_utc(updated.actual_start_date) == FIRST
    assert as_utc(updated.actual_end_date) == FIRST


def test_start_date_is_kept_across_updates(db, sub_topic):
    set_sub_topic_status(db, sub_topic.id, CprStatus.IN_PROGRESS, now=FIRST)
    updated = set_sub_topic_status(db, sub_topic.id, CprStatus.IN_PROGRESS, now=LATER)

    assert as_utc(updated.actual_start_date) == FIRST
    assert updated.actual_end_date is None


def test_completing_again_refreshes_end_date(db, sub_topic):
    set_sub_topic_status(db, sub_topic.id, CprStatus.COMPLETED, now=FIRST)
    updated = set_sub_topic_status(db, sub_topic.id, CprStatus.COMPLETED, now=LATER)

    assert as_utc(updated.actual_start_date) == FIRST
    assert as_utc(updated.actual_end_date) == LATER


def test_completed_can_move_back_to_in_progress(db, sub_topic):
    set_sub_topic_status(db, sub_topic.id, CprStatus.COMPLETED, now=FIRST)
    updated = set_sub_topic_status(db, sub_topic.id, CprStatus.IN_PROGRESS, now=LATER)

    assert updated.status == CprStatus.IN_PROGRESS
    assert as_utc(updated.actual_start_date) == FIRST
    assert as_utc(updated.actual_end_date) == FIRST


def test_status_update_does_not_touch_planned_dates(db, sub_topic):
    set_sub_topic_status(db, sub_topic.id, CprStatus.COMPLETED, now=FIRST)

    assert sub_topic.planned_start_date is None
    assert sub_topic.planned_end_date is None


def test_unknown_sub_topic_is_not_found(db):
    with pytest.raises(ResourceNotFoundError):
        set_sub_topic_status(db, "missing-id", CprStatus.IN_PROGRESS)


def test_pending_is_not_settable(db, sub_topic):
    with pytest.raises(ValueError):
        set_sub_topic_status(db, sub_topic.id, CprStatus.PENDING)
    assert sub_topic.status == CprStatus.PENDING
