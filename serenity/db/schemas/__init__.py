from .common import Money, PaymentStatus, TimeOfDay
from .location import DayHours, LocationCreate, LocationUpdate
from .service import ServiceCreate, ServiceUpdate
from .class_session import ClassCreate, ClassUpdate
from .booking import Booking, BookingCreate, BookingStatusUpdate
from .enrollment import EnrollmentCreate, RegistrationStatusUpdate
from .user import LoginRequest, RegisterRequest, ChangePasswordRequest
