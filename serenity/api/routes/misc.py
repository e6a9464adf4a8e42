from datetime import datetime, timezone
import logging
import secrets

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import JSONResponse

from ...config import get_settings
from ...core.logs import request_id_var
from ...db.storage import StorageAdapter, StorageError
from ...services import seed
from .. import deps

logger = logging.getLogger(__name__)

router = APIRouter(tags=["misc"])


@router.get("/health")
def health_check(storage: StorageAdapter = Depends(deps.get_storage)):
    settings = get_settings()
    try:
        storage.ping()
    except StorageError as exc:
        logger.error("Health check failed: %s", exc)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "status": "DEGRADED",
                "db": "ERROR",
                "message": str(exc),
                "code": exc.code,
                "requestId": request_id_var.get(),
            },
        )
    return {
        "status": "OK",
        "db": "OK",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "environment": settings.env,
    }


@router.api_route("/admin/init", methods=["GET", "POST", "PUT", "PATCH", "DELETE"])
def admin_init(key: str = "", storage: StorageAdapter = Depends(deps.get_storage)):
    expected = get_settings().init_key
    if not expected or not secrets.compare_digest(key.encode(), expected.encode()):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")
    seed.init_database(storage)
    logger.info("Database re-initialised on request")
    return {"message": "Database initialized"}
