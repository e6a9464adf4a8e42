import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status

from ...core.constants import DEFAULT_PAGE_SIZE
from ...db import schemas
from ...db.sql import Filter, build_insert, build_update
from ...db.storage import StorageAdapter
from ...services import enrollment_service, listing_service
from .. import deps

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/classes", tags=["classes"])


def class_out(row: dict) -> dict:
    return {**row, "is_active": bool(row.get("is_active"))}


@router.get("")
def list_classes(
    category: str | None = None,
    active_only: bool = True,
    storage: StorageAdapter = Depends(deps.get_storage),
):
    where = Filter().equals_if("category", category)
    if active_only:
        where.equals("is_active", 1)
    rows = storage.execute(
        f"SELECT * FROM classes{where.sql()} ORDER BY class_date DESC, start_time", where.params
    ).rows
    return {"classes": [class_out(row) for row in rows]}


@router.get("/registrations")
def list_registrations(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=DEFAULT_PAGE_SIZE, ge=1),
    payment_status: schemas.PaymentStatus | None = Query(default=None, alias="status"),
    course_type: str | None = None,
    storage: StorageAdapter = Depends(deps.get_storage),
    _: dict = Depends(deps.require_roles("admin")),
):
    return listing_service.list_registrations(storage, page, limit, payment_status, course_type)


@router.post("/register", status_code=status.HTTP_201_CREATED)
def register_for_class(payload: schemas.EnrollmentCreate, storage: StorageAdapter = Depends(deps.get_storage)):
    try:
        registration = enrollment_service.enroll(storage, payload.model_dump())
    except enrollment_service.EnrollmentError as exc:
        raise HTTPException(status_code=exc.status_code, detail=str(exc)) from exc
    return {
        "message": "Registration created successfully",
        "registration": registration,
        "next_steps": {
            "payment_required": registration["payment_status"] != "paid",
            "confirmation_email": "will_be_sent",
            "registration_id": registration["id"],
        },
    }


@router.patch("/registrations/{registration_id}/status")
def update_registration_status(
    registration_id: int,
    payload: schemas.RegistrationStatusUpdate,
    storage: StorageAdapter = Depends(deps.get_storage),
    _: dict = Depends(deps.require_roles("admin")),
):
    try:
        registration = enrollment_service.update_registration_status(
            storage, registration_id, payload.status, payload.payment_status
        )
    except enrollment_service.EnrollmentError as exc:
        raise HTTPException(status_code=exc.status_code, detail=str(exc)) from exc
    return {"message": "Registration updated successfully", "registration": registration}


@router.post("", status_code=status.HTTP_201_CREATED)
def create_class(
    payload: schemas.ClassCreate,
    storage: StorageAdapter = Depends(deps.get_storage),
    _: dict = Depends(deps.require_roles("admin")),
):
    if not storage.execute("SELECT id FROM locations WHERE id = $1", [payload.location_id]).rows:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Location not found")
    sql, params = build_insert("classes", payload.model_dump())
    created = storage.execute(sql, params).first()
    logger.info("Class %s created for %s", created["id"], created["class_date"])
    return {"message": "Class created successfully", "class": class_out(created)}


@router.put("/{class_id}")
def update_class(
    class_id: int,
    payload: schemas.ClassUpdate,
    storage: StorageAdapter = Depends(deps.get_storage),
    _: dict = Depends(deps.require_roles("admin")),
):
    patch = payload.model_dump(exclude_unset=True)
    if not patch:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No fields to update")
    sql, params = build_update("classes", patch, class_id)
    with storage.transaction() as tx:
        current = tx.execute("SELECT current_participants FROM classes WHERE id = $1", [class_id]).first()
        if current is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Class not found")
        capacity = patch.get("max_participants")
        if capacity is not None and capacity < current["current_participants"]:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=f"Capacity cannot be below current enrollment ({current['current_participants']})",
            )
        updated = tx.execute(sql, params).first()
    return {"message": "Class updated successfully", "class": class_out(updated)}


@router.delete("/{class_id}")
def delete_class(
    class_id: int,
    storage: StorageAdapter = Depends(deps.get_storage),
    _: dict = Depends(deps.require_roles("admin")),
):
    with storage.transaction() as tx:
        enrolled = int(
            tx.execute(
                "SELECT COUNT(*) AS count FROM class_enrollments WHERE class_id = $1", [class_id]
            ).scalar(0)
        )
        if enrolled:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Cannot delete class with existing enrollments. Deactivate it instead.",
            )
        deleted = tx.execute("DELETE FROM classes WHERE id = $1 RETURNING id", [class_id]).first()
    if deleted is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Class not found")
    return {"message": "Class deleted successfully"}
