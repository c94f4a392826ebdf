from pydantic import BaseModel, Field, field_validator


class CourseBase(BaseModel):
    code: str = Field(min_length=1, max_length=50)
    name: str = Field(min_length=1, max_length=200)
    description: str | None = None
    teacher_id: str | None = Field(default=None, max_length=36)

    @field_validator("code")
    @classmethod
    def normalize_code(cls, value: str) -> str:
        code = value.strip().upper()
        if not code:
            raise ValueError("Course code cannot be empty")
        return code


class CourseCreate(CourseBase):
    pass


class CourseOut(CourseBase):
    id: str

    model_config = {"from_attributes": True}


class SessionGroupCreate(BaseModel):
    title: str = Field(min_length=1, max_length=200)


class SessionGroupOut(BaseModel):
    id: str
    course_id: str
    title: str

    model_config = {"from_attributes": True}
