from __future__ import annotations

from datetime import datetime

from sqlalchemy.orm import Session

from classplan.core.exceptions import ResourceNotFoundError
from classplan.models.cpr import CprStatus, CprSubTopic
from classplan.services.clock import utcnow


def set_sub_topic_status(
    db: Session,
    sub_topic_id: str,
    status: CprStatus,
    *,
    now: datetime | None = None,
) -> CprSubTopic:
    """Record a teacher's progress on a sub-topic.

    Not a guarded state machine: any call may move to IN_PROGRESS or
    COMPLETED. The first start is kept; COMPLETED always refreshes the end.
    """
    if status == CprStatus.PENDING:
        raise ValueError("PENDING is not a settable status")

    sub_topic = db.get(CprSubTopic, sub_topic_id)
    if sub_topic is None:
        raise ResourceNotFoundError("Sub-topic", sub_topic_id)

    moment = now or utcnow()
    sub_topic.status = status
    if sub_topic.actual_start_date is None:
        sub_topic.actual_start_date = moment
    if status == CprStatus.COMPLETED:
        sub_topic.actual_end_date = moment
    db.flush()
    return sub_topic
