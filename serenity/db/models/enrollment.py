from datetime import date, datetime
from sqlalchemy import Date, DateTime, ForeignKey, Integer, Numeric, String, func
from sqlalchemy.orm import Mapped, mapped_column
from ..session import Base


class ClassEnrollment(Base):
    __tablename__ = "class_enrollments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    class_id: Mapped[int] = mapped_column(ForeignKey("classes.id"), nullable=False, index=True)
    scheduled_date: Mapped[date | None] = mapped_column(Date)
    participant_first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    participant_last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    participant_email: Mapped[str] = mapped_column(String(255), nullable=False)
    participant_phone: Mapped[str | None] = mapped_column(String(20))
    status: Mapped[str] = mapped_column(String(20), server_default="pending")
    payment_status: Mapped[str] = mapped_column(String(20), server_default="pending", index=True)
    total_amount: Mapped[float | None] = mapped_column(Numeric(10, 2))
    enrollment_date: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
