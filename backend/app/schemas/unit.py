from pydantic import BaseModel, Field, field_validator


class UnitCreate(BaseModel):
    code: str = Field(min_length=1, max_length=50)
    name: str = Field(min_length=1, max_length=200)
    course_id: str = Field(min_length=1, max_length=36)
    capacity: int | None = Field(default=None, ge=0, le=5000)
    prerequisite_ids: list[str] = Field(default_factory=list, max_length=50)
    description: str | None = Field(default=None, max_length=2000)

    @field_validator("code")
    @classmethod
    def normalize_code(cls, value: str) -> str:
        return value.strip().upper()


class UnitOut(BaseModel):
    id: str
    code: str
    name: str
    course_id: str
    capacity: int | None = None
    description: str | None = None
    prerequisite_ids: list[str] = Field(default_factory=list)
    prerequisite_codes: list[str] = Field(default_factory=list)
