from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from classplan.models.cpr import CprStatus


class SubTopicStatusUpdate(BaseModel):
    status: CprStatus

    @field_validator("status")
    @classmethod
    def validate_target(cls, value: CprStatus) -> CprStatus:
        if value == CprStatus.PENDING:
            raise ValueError("status must be IN_PROGRESS or COMPLETED")
        return value


class CprSubTopicOut(BaseModel):
    id: str
    topic_id: str
    name: str
    order: int
    lecture_count: int
    status: CprStatus
    planned_start_date: datetime | None = None
    planned_end_date: datetime | None = None
    actual_start_date: datetime | None = None
    actual_end_date: datetime | None = None

    model_config = {"from_attributes": True}


class CprTopicOut(BaseModel):
    id: str
    name: str
    order: int
    sub_topics: list[CprSubTopicOut] = Field(default_factory=list)


class CprModuleOut(BaseModel):
    id: str
    name: str
    order: int
    topics: list[CprTopicOut] = Field(default_factory=list)


class CprSubjectHeader(BaseModel):
    id: str
    name: str
    code: str


class CprSummary(BaseModel):
    total_modules: int = 0
    total_topics: int = 0
    total_sub_topics: int = 0
    total_lectures: int = 0
    completed_sub_topics: int = 0
    in_progress_sub_topics: int = 0
    pending_sub_topics: int = 0
    completion_percentage: int = 0


class CprTreeOut(BaseModel):
    subject: CprSubjectHeader
    summary: CprSummary
    modules: list[CprModuleOut] = Field(default_factory=list)


class CprUploadResult(BaseModel):
    subject_id: str
    modules: int
    topics: int
    sub_topics: int
    skipped_rows: int
    linked_classes: int


class CprProgressOut(BaseModel):
    subject_id: str
    subject_name: str
    teacher_name: str
    expected_completion_lecture: int
    actual_completion_lecture: float
    completion_lag: float
    punctuality_late_count: int
    punctuality_on_time_count: int
    total_scheduled_topics: int
    punctuality_percentage: float
