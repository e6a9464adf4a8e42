import logging

from fastapi import APIRouter, Depends, HTTPException, status

from ...db import schemas
from ...db.sql import Filter, build_insert, build_update
from ...db.storage import StorageAdapter
from ...services.availability_service import decode_operating_hours
from .. import deps

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/locations", tags=["locations"])


def location_out(row: dict) -> dict:
    return {
        **row,
        "operating_hours": decode_operating_hours(row.get("operating_hours")),
        "is_primary": bool(row.get("is_primary")),
        "is_active": bool(row.get("is_active")),
    }


def encode_hours(operating_hours: dict[str, schemas.DayHours] | None) -> dict | None:
    if operating_hours is None:
        return None
    return {day: hours.model_dump(exclude_defaults=True) for day, hours in operating_hours.items()}


def location_values(payload: schemas.LocationCreate | schemas.LocationUpdate, exclude_unset: bool) -> dict:
    values = payload.model_dump(exclude={"operating_hours"}, exclude_unset=exclude_unset)
    if "operating_hours" in payload.model_fields_set or not exclude_unset:
        values["operating_hours"] = encode_hours(payload.operating_hours)
    return values


@router.get("")
def list_locations(active_only: bool = False, storage: StorageAdapter = Depends(deps.get_storage)):
    where = Filter()
    if active_only:
        where.equals("is_active", 1)
    rows = storage.execute(f"SELECT * FROM locations{where.sql()} ORDER BY name", where.params).rows
    return [location_out(row) for row in rows]


@router.get("/{location_id}")
def get_location(location_id: int, storage: StorageAdapter = Depends(deps.get_storage)):
    row = storage.execute("SELECT * FROM locations WHERE id = $1", [location_id]).first()
    if row is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Location not found")
    return location_out(row)


@router.post("", status_code=status.HTTP_201_CREATED)
def create_location(
    payload: schemas.LocationCreate,
    storage: StorageAdapter = Depends(deps.get_storage),
    _: dict = Depends(deps.require_roles("admin")),
):
    sql, params = build_insert("locations", location_values(payload, exclude_unset=False))
    location = storage.execute(sql, params).first()
    logger.info("Location %s created", location["id"])
    return {"message": "Location created successfully", "location": location_out(location)}


@router.put("/{location_id}")
def update_location(
    location_id: int,
    payload: schemas.LocationUpdate,
    storage: StorageAdapter = Depends(deps.get_storage),
    _: dict = Depends(deps.require_roles("admin")),
):
    values = location_values(payload, exclude_unset=True)
    if not values:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No fields to update")
    sql, params = build_update("locations", values, location_id)
    location = storage.execute(sql, params).first()
    if location is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Location not found")
    return {"message": "Location updated successfully", "location": location_out(location)}


@router.delete("/{location_id}")
def delete_location(
    location_id: int,
    storage: StorageAdapter = Depends(deps.get_storage),
    _: dict = Depends(deps.require_roles("admin")),
):
    with storage.transaction() as tx:
        booking_count = int(
            tx.execute(
                "SELECT COUNT(*) AS count FROM bookings WHERE location_id = $1", [location_id]
            ).scalar(0)
        )
        if booking_count:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail={
                    "message": "Cannot delete location with existing bookings",
                    "booking_count": booking_count,
                },
            )
        class_count = int(
            tx.execute(
                "SELECT COUNT(*) AS count FROM classes WHERE location_id = $1", [location_id]
            ).scalar(0)
        )
        if class_count:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail={"message": "Cannot delete location with scheduled classes", "class_count": class_count},
            )
        deleted = tx.execute("DELETE FROM locations WHERE id = $1 RETURNING *", [location_id]).first()
    if deleted is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Location not found")
    logger.info("Location %s deleted", location_id)
    return {"message": "Location deleted successfully", "deleted_location": location_out(deleted)}


@router.patch("/{location_id}/toggle-active")
def toggle_location(
    location_id: int,
    storage: StorageAdapter = Depends(deps.get_storage),
    _: dict = Depends(deps.require_roles("admin")),
):
    location = storage.execute(
        "UPDATE locations SET is_active = 1 - is_active, updated_at = CURRENT_TIMESTAMP "
        "WHERE id = $1 RETURNING *",
        [location_id],
    ).first()
    if location is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Location not found")
    state = "activated" if location["is_active"] else "deactivated"
    return {"message": f"Location {state} successfully", "location": location_out(location)}
