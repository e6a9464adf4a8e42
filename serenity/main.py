import logging
import time
import uuid

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .api.routes import auth, bookings, classes, locations, misc, services
from .config import get_settings
from .core.logs import configure_logging, request_id_var
from .db.session import get_storage
from .db.storage import StorageError
from .services.seed import init_database

logger = logging.getLogger(__name__)

settings = get_settings()

app = FastAPI(title="Pure Serenity API", version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
    allow_headers=["*"],
)

app.include_router(auth.router, prefix="/api")
app.include_router(locations.router, prefix="/api")
app.include_router(services.router, prefix="/api")
app.include_router(classes.router, prefix="/api")
app.include_router(bookings.router, prefix="/api/booking")
app.include_router(bookings.router, prefix="/api/bookings")
app.include_router(misc.router, prefix="/api")


@app.middleware("http")
async def request_context(request: Request, call_next):
    request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
    request.state.request_id = request_id
    token = request_id_var.set(request_id)
    started = time.perf_counter()
    logger.info("%s %s started", request.method, request.url.path)
    try:
        response = await call_next(request)
    finally:
        request_id_var.reset(token)
    elapsed_ms = (time.perf_counter() - started) * 1000
    response.headers["X-Request-ID"] = request_id
    logger.info(
        "%s %s finished %s in %.1fms [%s]",
        request.method,
        request.url.path,
        response.status_code,
        elapsed_ms,
        request_id,
    )
    return response


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"message": "Validation error", "errors": jsonable_encoder(exc.errors())},
    )


@app.exception_handler(StorageError)
async def storage_exception_handler(request: Request, exc: StorageError):
    if exc.unique_violation:
        return JSONResponse(
            status_code=status.HTTP_409_CONFLICT,
            content={"message": "Resource already exists"},
        )
    return await unhandled_exception_handler(request, exc)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    # Runs outside the request middleware, so the id comes from request state.
    request_id = getattr(request.state, "request_id", None) or request_id_var.get()
    logger.error(
        "Unhandled error on %s %s [%s]", request.method, request.url.path, request_id, exc_info=exc
    )
    content = {"message": "Internal server error", "requestId": request_id}
    if not settings.is_production:
        content["error"] = str(exc)
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=content)


@app.on_event("startup")
async def startup_event() -> None:
    configure_logging(settings.log_level)
    init_database(get_storage())
    logger.info("Serenity API started in %s mode", settings.env)
