from datetime import date
from typing import Literal

from fastapi import APIRouter, Depends, HTTPException, Query, status

from ...core.constants import DEFAULT_APPOINTMENT_DURATION, DEFAULT_PAGE_SIZE
from ...db import schemas
from ...db.storage import StorageAdapter
from ...services import availability_service, booking_service, listing_service
from .. import deps

# Mounted under both /api/booking and /api/bookings.
router = APIRouter(tags=["bookings"])

StatusFilter = Literal["pending", "confirmed", "completed", "cancelled"]


@router.get("/availability/{appointment_date}")
def get_availability(
    appointment_date: date,
    location_id: int | None = Query(default=None, gt=0),
    duration: int = Query(default=DEFAULT_APPOINTMENT_DURATION, ge=15, le=300),
    storage: StorageAdapter = Depends(deps.get_storage),
):
    try:
        return availability_service.get_availability(storage, appointment_date, location_id, duration)
    except availability_service.LocationNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc


@router.post("", status_code=status.HTTP_201_CREATED)
@router.post("/", status_code=status.HTTP_201_CREATED, include_in_schema=False)
def create_booking(payload: schemas.BookingCreate, storage: StorageAdapter = Depends(deps.get_storage)):
    try:
        booking = booking_service.create_booking(storage, payload.model_dump())
    except booking_service.BookingError as exc:
        raise HTTPException(status_code=exc.status_code, detail=str(exc)) from exc
    return {
        "message": "Booking created successfully",
        "booking": booking,
        "next_steps": {
            "payment_required": False,
            "confirmation_email": "will_be_sent",
            "booking_id": booking["id"],
        },
    }


@router.get("/admin")
def list_bookings_admin(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=DEFAULT_PAGE_SIZE, ge=1),
    status_filter: StatusFilter | None = Query(default=None, alias="status"),
    appointment_date: date | None = Query(default=None, alias="date"),
    storage: StorageAdapter = Depends(deps.get_storage),
    _: dict = Depends(deps.require_roles("admin")),
):
    return listing_service.list_bookings(
        storage, page, limit, status_filter, appointment_date, order="created"
    )


@router.get("")
@router.get("/", include_in_schema=False)
def list_bookings(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=DEFAULT_PAGE_SIZE, ge=1),
    status_filter: StatusFilter | None = Query(default=None, alias="status"),
    appointment_date: date | None = Query(default=None, alias="date"),
    storage: StorageAdapter = Depends(deps.get_storage),
    _: dict = Depends(deps.require_roles("admin")),
):
    return listing_service.list_bookings(
        storage, page, limit, status_filter, appointment_date, order="appointment"
    )


@router.get("/{booking_id}", response_model=schemas.Booking)
def get_booking(
    booking_id: int,
    storage: StorageAdapter = Depends(deps.get_storage),
    _: dict = Depends(deps.require_roles("admin")),
):
    try:
        return booking_service.get_booking(storage, booking_id)
    except booking_service.BookingNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc


@router.patch("/{booking_id}/status")
@router.put("/{booking_id}/status")
def update_booking_status(
    booking_id: int,
    payload: schemas.BookingStatusUpdate,
    storage: StorageAdapter = Depends(deps.get_storage),
    _: dict = Depends(deps.require_roles("admin")),
):
    try:
        booking = booking_service.update_status(
            storage, booking_id, payload.status, payload.payment_status
        )
    except booking_service.BookingError as exc:
        raise HTTPException(status_code=exc.status_code, detail=str(exc)) from exc
    return {"message": "Booking updated successfully", "booking": booking}


@router.delete("/{booking_id}")
def delete_booking(
    booking_id: int,
    storage: StorageAdapter = Depends(deps.get_storage),
    _: dict = Depends(deps.require_roles("admin")),
):
    try:
        booking_service.delete_booking(storage, booking_id)
    except booking_service.BookingNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return {"message": "Booking deleted successfully"}
