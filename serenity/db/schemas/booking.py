from datetime import date, datetime

from pydantic import BaseModel, EmailStr, Field

from .common import Money, TimeOfDay


class BookingCreate(BaseModel):
    service_id: int = Field(gt=0)
    duration: int = Field(ge=15, le=300)
    appointment_date: date
    appointment_time: TimeOfDay
    location_id: int = Field(gt=0)
    client_first_name: str = Field(min_length=1)
    client_last_name: str = Field(min_length=1)
    client_email: EmailStr
    client_phone: str = Field(min_length=7)
    notes: str = Field(default="", max_length=2000)
    price: Money


class BookingStatusUpdate(BaseModel):
    status: str
    payment_status: str | None = None


class Booking(BaseModel):
    id: int
    service_id: int
    location_id: int
    appointment_date: date
    appointment_time: str
    duration: int
    price: float
    status: str
    payment_status: str
    client_first_name: str
    client_last_name: str
    client_email: str
    client_phone: str | None = None
    notes: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
