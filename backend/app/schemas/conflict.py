from pydantic import BaseModel, Field, computed_field, model_validator

from app.models.schedule_template import ApprovalStatus, DayOfWeek
from app.services.time_window import parse_time_to_minutes, normalize_time


class ConflictingTemplate(BaseModel):
    template_id: str
    day_of_week: DayOfWeek
    start_time: str
    end_time: str
    teacher_id: str
    room: str | None = None
    course_id: str
    approval_status: ApprovalStatus
    description: str


class ConflictReport(BaseModel):
    teacher_conflicts: list[ConflictingTemplate] = Field(default_factory=list)
    room_conflicts: list[ConflictingTemplate] = Field(default_factory=list)

    @computed_field
    @property
    def has_conflict(self) -> bool:
        return bool(self.teacher_conflicts or self.room_conflicts)


class ConflictCheckRequest(BaseModel):
    teacher_id: str = Field(min_length=1, max_length=36)
    day_of_week: DayOfWeek
    start_time: str
    end_time: str
    room: str | None = Field(default=None, max_length=50)
    exclude_id: str | None = Field(default=None, max_length=36)

    @model_validator(mode="after")
    def validate_window(self) -> "ConflictCheckRequest":
        try:
            self.start_time = normalize_time(self.start_time)
            self.end_time = normalize_time(self.end_time)
        except ValueError as exc:
            raise ValueError("Time must be in HH:MM 24-hour format") from exc
        if parse_time_to_minutes(self.end_time) <= parse_time_to_minutes(self.start_time):
            raise ValueError("end_time must be after start_time")
        if self.room is not None:
            self.room = self.room.strip() or None
        return self
