from . import (
    admin,
    availability_service,
    booking_service,
    enrollment_service,
    listing_service,
    seed,
)
__all__ = [
    "admin",
    "availability_service",
    "booking_service",
    "enrollment_service",
    "listing_service",
    "seed",
]
