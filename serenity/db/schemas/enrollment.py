from datetime import date

from pydantic import BaseModel, EmailStr, Field

from .common import Money, PaymentStatus


class EnrollmentCreate(BaseModel):
    class_id: int = Field(gt=0)
    scheduled_date: date
    participant_first_name: str = Field(min_length=1)
    participant_last_name: str = Field(min_length=1)
    participant_email: EmailStr
    participant_phone: str = Field(min_length=7)
    payment_status: PaymentStatus = "pending"
    total_amount: Money


class RegistrationStatusUpdate(BaseModel):
    status: str
    payment_status: str | None = None
