from .user import User
from .location import Location
from .service import Service
from .class_session import ClassSession
from .booking import Booking
from .enrollment import ClassEnrollment
