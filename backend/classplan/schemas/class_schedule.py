from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel, Field, field_validator, model_validator

from classplan.schemas.common import DAY_VALUES, TIME_PATTERN, parse_time_to_minutes
from classplan.services.clock import as_utc


class ScheduleItem(BaseModel):
    day_of_week: str
    start_time: str
    end_time: str
    lecture_number: int = Field(ge=1)

    @field_validator("day_of_week")
    @classmethod
    def validate_day(cls, value: str) -> str:
        day = value.strip().capitalize()
        if day not in DAY_VALUES:
            raise ValueError("Invalid day value")
        return day

    @field_validator("start_time", "end_time")
    @classmethod
    def validate_time_format(cls, value: str) -> str:
        if not TIME_PATTERN.match(value):
            raise ValueError("Time must be in HH:MM 24-hour format")
        return value

    @model_validator(mode="after")
    def validate_order(self) -> "ScheduleItem":
        if parse_time_to_minutes(self.end_time) <= parse_time_to_minutes(self.start_time):
            raise ValueError("end_time must be after start_time")
        return self


class WeeklyScheduleCreate(BaseModel):
    subject_id: str = Field(min_length=1, max_length=36)
    room_id: str | None = Field(default=None, max_length=36)
    start_date: date
    end_date: date
    schedule_items: list[ScheduleItem] = Field(min_length=1, max_length=100)

    @model_validator(mode="after")
    def validate_range(self) -> "WeeklyScheduleCreate":
        if self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self


class ClassUpdate(BaseModel):
    lecture_number: int | None = Field(default=None, ge=1)
    start_at: datetime | None = None
    end_at: datetime | None = None
    room_id: str | None = Field(default=None, max_length=36)

    @field_validator("start_at", "end_at")
    @classmethod
    def normalize_to_utc(cls, value: datetime | None) -> datetime | None:
        # Naive input is read as UTC.
        return as_utc(value)

    @model_validator(mode="after")
    def validate_window(self) -> "ClassUpdate":
        if self.start_at is not None and self.end_at is not None and self.end_at <= self.start_at:
            raise ValueError("end_at must be after start_at")
        return self


class ClassOut(BaseModel):
    id: str
    subject_id: str
    division_id: str
    teacher_id: str
    room_id: str | None = None
    start_at: datetime
    end_at: datetime
    lecture_number: int
    calendar_event_id: str | None = None
    sub_topic_id: str | None = None

    model_config = {"from_attributes": True}


class ClassDetailOut(ClassOut):
    subject_name: str | None = None
    subject_code: str | None = None
    teacher_name: str | None = None
    room_name: str | None = None
    sub_topic_name: str | None = None


class ScheduleResponse(BaseModel):
    success: bool = True
    message: str
    data: list[ClassOut] = Field(default_factory=list)


class ClassListResponse(BaseModel):
    success: bool = True
    data: list[ClassDetailOut] = Field(default_factory=list)
    count: int = 0
