"""Reusable annotated field types for request/response schemas."""

from datetime import date, time
from typing import Annotated

from pydantic import BeforeValidator, PlainSerializer

from app.core.timeutils import format_time, parse_date, parse_time

# Accepts "HH:MM" or "HH:MM:SS" and always serializes as "HH:MM:SS"
WallClockTime = Annotated[
    time,
    BeforeValidator(parse_time),
    PlainSerializer(format_time, return_type=str),
]

# Accepts only "YYYY-MM-DD" strings that name a real calendar day
CalendarDate = Annotated[date, BeforeValidator(parse_date)]
