from datetime import date, datetime

from pydantic import BaseModel, Field, computed_field, model_validator

from app.models.session_occurrence import OccurrenceStatus


class GenerateOccurrencesRequest(BaseModel):
    start_date: date
    end_date: date

    @model_validator(mode="after")
    def validate_range(self) -> "GenerateOccurrencesRequest":
        if self.end_date <= self.start_date:
            raise ValueError("end_date must be after start_date")
        return self


class CreatedOccurrence(BaseModel):
    id: str
    scheduled_date: date


class FailedOccurrence(BaseModel):
    scheduled_date: date
    reason: str


class GenerationReport(BaseModel):
    template_id: str
    created: list[CreatedOccurrence] = Field(default_factory=list)
    skipped: list[date] = Field(default_factory=list)
    failed: list[FailedOccurrence] = Field(default_factory=list)
    total_candidate_dates: int = 0

    @computed_field
    @property
    def complete(self) -> bool:
        return not self.failed


class SessionOccurrenceOut(BaseModel):
    id: str
    template_id: str
    course_id: str
    teacher_id: str
    session_group_id: str
    room: str | None = None
    building: str | None = None
    scheduled_date: date
    start_time: str
    end_time: str
    status: OccurrenceStatus
    created_at: datetime

    model_config = {"from_attributes": True}
