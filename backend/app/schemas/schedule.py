from datetime import date, datetime

from pydantic import BaseModel, Field, field_validator, model_validator

from app.models.schedule_template import ApprovalStatus, DayOfWeek, RecurrenceType
from app.services.time_window import normalize_time, parse_time_to_minutes

NOTES_MAX_LENGTH = 500


def _normalize_optional_text(value: str | None) -> str | None:
    if value is None:
        return None
    trimmed = value.strip()
    return trimmed or None


class ScheduleTemplateCreate(BaseModel):
    course_id: str = Field(min_length=1, max_length=36)
    teacher_id: str = Field(min_length=1, max_length=36)
    session_group_id: str = Field(min_length=1, max_length=36)
    day_of_week: DayOfWeek
    start_time: str
    end_time: str
    room: str | None = Field(default=None, max_length=50)
    building: str | None = Field(default=None, max_length=100)
    recurrence_type: RecurrenceType = RecurrenceType.weekly
    effective_from: date | None = None
    effective_to: date | None = None
    exception_dates: list[date] = Field(default_factory=list, max_length=366)
    notes: str | None = Field(default=None, max_length=NOTES_MAX_LENGTH)

    @field_validator("start_time", "end_time")
    @classmethod
    def validate_time_format(cls, value: str) -> str:
        return normalize_time(value)

    @field_validator("room", "building", "notes")
    @classmethod
    def normalize_text(cls, value: str | None) -> str | None:
        return _normalize_optional_text(value)

    @model_validator(mode="after")
    def validate_order(self) -> "ScheduleTemplateCreate":
        if parse_time_to_minutes(self.end_time) <= parse_time_to_minutes(self.start_time):
            raise ValueError("end_time must be after start_time")
        if self.effective_from and self.effective_to and self.effective_to <= self.effective_from:
            raise ValueError("effective_to must be after effective_from")
        return self


class ScheduleTemplateUpdate(BaseModel):
    day_of_week: DayOfWeek | None = None
    start_time: str | None = None
    end_time: str | None = None
    room: str | None = Field(default=None, max_length=50)
    building: str | None = Field(default=None, max_length=100)
    recurrence_type: RecurrenceType | None = None
    effective_from: date | None = None
    effective_to: date | None = None
    exception_dates: list[date] | None = Field(default=None, max_length=366)
    notes: str | None = Field(default=None, max_length=NOTES_MAX_LENGTH)

    @field_validator("start_time", "end_time")
    @classmethod
    def validate_time_format(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return normalize_time(value)

    @field_validator("room", "building", "notes")
    @classmethod
    def normalize_text(cls, value: str | None) -> str | None:
        return _normalize_optional_text(value)

    @model_validator(mode="after")
    def validate_not_empty(self) -> "ScheduleTemplateUpdate":
        if not self.model_fields_set:
            raise ValueError("At least one field must be provided for update")
        if self.start_time and self.end_time:
            if parse_time_to_minutes(self.end_time) <= parse_time_to_minutes(self.start_time):
                raise ValueError("end_time must be after start_time")
        return self


class ApprovalDecision(BaseModel):
    notes: str | None = Field(default=None, max_length=NOTES_MAX_LENGTH)


class ScheduleTemplateOut(BaseModel):
    id: str
    course_id: str
    teacher_id: str
    session_group_id: str
    room: str | None = None
    building: str | None = None
    day_of_week: DayOfWeek
    start_time: str
    end_time: str
    recurrence_type: RecurrenceType
    effective_from: date
    effective_to: date | None = None
    exception_dates: list[date] = Field(default_factory=list)
    is_active: bool
    approval_status: ApprovalStatus
    requires_approval: bool
    approved_by_id: str | None = None
    approval_date: datetime | None = None
    approval_notes: str | None = None
    notes: str | None = None
    created_by_id: str
    deactivated_at: datetime | None = None
    created_at: datetime
    updated_at: datetime | None = None

    model_config = {"from_attributes": True}


class WeeklyTimetableOut(BaseModel):
    days: dict[DayOfWeek, list[ScheduleTemplateOut]]
    count: int
