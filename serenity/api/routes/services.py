import json
import logging

from fastapi import APIRouter, Depends, HTTPException, status

from ...db import schemas
from ...db.sql import Filter, build_insert, build_update
from ...db.storage import StorageAdapter, StorageError
from .. import deps

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/services", tags=["services"])

DUPLICATE_SERVICE = "A service with this identifier already exists"


def _decode_list(raw):
    if raw is None or raw == "":
        return None
    return json.loads(raw) if isinstance(raw, (str, bytes)) else list(raw)


def service_out(row: dict) -> dict:
    return {
        **row,
        "durations": _decode_list(row.get("durations")),
        "prices": _decode_list(row.get("prices")),
        "is_popular": bool(row.get("is_popular")),
        "is_active": bool(row.get("is_active")),
    }


@router.get("")
def list_services(
    category: str | None = None,
    active_only: bool = False,
    storage: StorageAdapter = Depends(deps.get_storage),
):
    where = Filter().equals_if("category", category)
    if active_only:
        where.equals("is_active", 1)
    rows = storage.execute(f"SELECT * FROM services{where.sql()} ORDER BY category, name", where.params).rows
    return {"services": [service_out(row) for row in rows]}


@router.get("/meta/categories")
def list_categories(storage: StorageAdapter = Depends(deps.get_storage)):
    rows = storage.execute(
        "SELECT category, COUNT(*) AS count FROM services WHERE is_active = $1 "
        "GROUP BY category ORDER BY category",
        [1],
    ).rows
    return {"categories": rows}


@router.get("/{service_id}")
def get_service(service_id: int, storage: StorageAdapter = Depends(deps.get_storage)):
    row = storage.execute("SELECT * FROM services WHERE id = $1", [service_id]).first()
    if row is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Service not found")
    return {"service": service_out(row)}


@router.post("", status_code=status.HTTP_201_CREATED)
def create_service(
    payload: schemas.ServiceCreate,
    storage: StorageAdapter = Depends(deps.get_storage),
    _: dict = Depends(deps.require_roles("admin")),
):
    sql, params = build_insert("services", {**payload.model_dump(), "is_active": True})
    try:
        service = storage.execute(sql, params).first()
    except StorageError as exc:
        if exc.unique_violation:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=DUPLICATE_SERVICE) from exc
        raise
    logger.info("Service %s created", service["id"])
    return {"message": "Service created successfully", "service": service_out(service)}


@router.put("/{service_id}")
def update_service(
    service_id: int,
    payload: schemas.ServiceUpdate,
    storage: StorageAdapter = Depends(deps.get_storage),
    _: dict = Depends(deps.require_roles("admin")),
):
    patch = payload.model_dump(exclude_unset=True)
    if not patch:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No fields to update")
    sql, params = build_update("services", patch, service_id)
    try:
        service = storage.execute(sql, params).first()
    except StorageError as exc:
        if exc.unique_violation:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=DUPLICATE_SERVICE) from exc
        raise
    if service is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Service not found")
    return {"message": "Service updated successfully", "service": service_out(service)}


@router.delete("/{service_id}")
def delete_service(
    service_id: int,
    storage: StorageAdapter = Depends(deps.get_storage),
    _: dict = Depends(deps.require_roles("admin")),
):
    with storage.transaction() as tx:
        in_use = int(
            tx.execute("SELECT COUNT(*) AS count FROM bookings WHERE service_id = $1", [service_id]).scalar(0)
        )
        if in_use:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Cannot delete service that has associated bookings. Deactivate it instead.",
            )
        deleted = tx.execute("DELETE FROM services WHERE id = $1 RETURNING id", [service_id]).first()
    if deleted is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Service not found")
    logger.info("Service %s deleted", service_id)
    return {"message": "Service deleted successfully", "deleted": deleted}
