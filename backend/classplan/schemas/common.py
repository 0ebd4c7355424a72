from __future__ import annotations

import re

from pydantic import BaseModel

# Python's date.weekday(): Monday == 0.
DAY_VALUES: dict[str, int] = {
    "Monday": 0,
    "Tuesday": 1,
    "Wednesday": 2,
    "Thursday": 3,
    "Friday": 4,
    "Saturday": 5,
    "Sunday": 6,
}

TIME_PATTERN: re.Pattern[str] = re.compile(r"^([01]?\d|2[0-3]):[0-5]\d$")


def parse_time_to_minutes(value: str) -> int:
    if not TIME_PATTERN.match(value):
        raise ValueError("Time must be in HH:MM 24-hour format")
    hours, minutes = value.split(":")
    return int(hours) * 60 + int(minutes)


class MessageResponse(BaseModel):
    success: bool = True
    message: str
