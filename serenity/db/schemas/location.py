from pydantic import BaseModel, Field, field_validator, model_validator

from ...core.constants import WEEKDAYS
from .common import TimeOfDay


class DayHours(BaseModel):
    open: TimeOfDay | None = None
    close: TimeOfDay | None = None
    closed: bool = False

    @model_validator(mode="after")
    def check_range(self):
        if self.closed:
            return self
        if not self.open or not self.close:
            raise ValueError("open and close are required unless the day is closed")
        if self.close <= self.open:
            raise ValueError("close must be later than open")
        return self


def _check_weekdays(value: dict | None) -> dict | None:
    if value is None:
        return value
    unknown = set(value) - set(WEEKDAYS)
    if unknown:
        raise ValueError(f"Unknown weekdays: {', '.join(sorted(unknown))}")
    return value


class LocationBase(BaseModel):
    name: str = Field(min_length=1)
    address: str = Field(min_length=1)
    city: str = Field(min_length=1)
    state: str = Field(min_length=2, max_length=10)
    zip_code: str = Field(min_length=3, max_length=10)
    phone: str | None = None
    email: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    operating_hours: dict[str, DayHours] | None = None
    is_primary: bool = False
    is_active: bool = True

    @field_validator("operating_hours")
    @classmethod
    def check_weekdays(cls, value):
        return _check_weekdays(value)


class LocationCreate(LocationBase):
    pass


class LocationUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1)
    address: str | None = Field(default=None, min_length=1)
    city: str | None = Field(default=None, min_length=1)
    state: str | None = Field(default=None, min_length=2, max_length=10)
    zip_code: str | None = Field(default=None, min_length=3, max_length=10)
    phone: str | None = None
    email: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    operating_hours: dict[str, DayHours] | None = None
    is_primary: bool | None = None
    is_active: bool | None = None

    @field_validator("operating_hours")
    @classmethod
    def check_weekdays(cls, value):
        return _check_weekdays(value)
