from pydantic import BaseModel, Field, field_validator


class RoomBase(BaseModel):
    name: str = Field(min_length=1, max_length=50)
    building: str | None = Field(default=None, max_length=100)
    capacity: int = Field(default=30, ge=1, le=1000)

    @field_validator("name")
    @classmethod
    def normalize_name(cls, value: str) -> str:
        trimmed = value.strip()
        if not trimmed:
            raise ValueError("Room name cannot be empty")
        return trimmed

    @field_validator("building")
    @classmethod
    def normalize_building(cls, value: str | None) -> str | None:
        if value is None:
            return None
        trimmed = value.strip()
        return trimmed or None


class RoomCreate(RoomBase):
    pass


class RoomUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=50)
    building: str | None = Field(default=None, max_length=100)
    capacity: int | None = Field(default=None, ge=1, le=1000)


class RoomOut(RoomBase):
    id: str

    model_config = {"from_attributes": True}
