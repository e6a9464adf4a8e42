from datetime import date

from pydantic import BaseModel, Field, model_validator

from .common import Money, TimeOfDay


class ClassBase(BaseModel):
    title: str = Field(min_length=1)
    description: str | None = None
    instructor: str = Field(min_length=1)
    class_date: date
    start_time: TimeOfDay
    end_time: TimeOfDay
    location_id: int = Field(gt=0)
    max_participants: int = Field(default=20, gt=0)
    price: Money
    category: str | None = None
    course_id: str | None = Field(default=None, max_length=50)
    is_active: bool = True


class ClassCreate(ClassBase):
    @model_validator(mode="after")
    def check_times(self):
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be later than start_time")
        return self


class ClassUpdate(BaseModel):
    title: str | None = Field(default=None, min_length=1)
    description: str | None = None
    instructor: str | None = Field(default=None, min_length=1)
    class_date: date | None = None
    start_time: TimeOfDay | None = None
    end_time: TimeOfDay | None = None
    location_id: int | None = Field(default=None, gt=0)
    max_participants: int | None = Field(default=None, gt=0)
    price: Money | None = None
    category: str | None = None
    is_active: bool | None = None
