import uuid
from datetime import datetime

from sqlalchemy import DateTime, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from classplan.db.base import Base


class ClassSession(Base):
    """One scheduled lecture of a subject. Times are stored in UTC."""

    __tablename__ = "classes"
    __table_args__ = (
        Index("ix_classes_teacher_window", "teacher_id", "start_at", "end_at"),
        Index("ix_classes_room_window", "room_id", "start_at", "end_at"),
        Index("ix_classes_subject_start", "subject_id", "start_at"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    subject_id: Mapped[str] = mapped_column(String(36), nullable=False)
    division_id: Mapped[str] = mapped_column(String(36), nullable=False)
    teacher_id: Mapped[str] = mapped_column(String(36), nullable=False)
    room_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    start_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    lecture_number: Mapped[int] = mapped_column(Integer, nullable=False)
    calendar_event_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    sub_topic_id: Mapped[str | None] = mapped_column(String(36), index=True, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), onupdate=func.now())
