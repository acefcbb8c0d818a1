from pydantic import BaseModel, Field, field_validator


class CourseCreate(BaseModel):
    code: str = Field(min_length=1, max_length=50)
    name: str = Field(min_length=1, max_length=200)

    @field_validator("code")
    @classmethod
    def normalize_code(cls, value: str) -> str:
        return value.strip().upper()


class CourseOut(CourseCreate):
    id: str

    model_config = {"from_attributes": True}
