# result_portal/main.py
import time
from collections import deque
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from pymongo.errors import DuplicateKeyError, PyMongoError

from result_portal.core.config import CONFIG, validate_config
from result_portal.core.database import db, ensure_indexes
from result_portal.core.logger import get_logger
from result_portal.core.rate_limit import client_key, general_limiter
from result_portal.core.security import require_role
from result_portal.routes.auth_routes import router as auth_router
from result_portal.routes.bulk_routes import router as bulk_router
from result_portal.routes.result_routes import router as result_router
from result_portal.routes.student_routes import router as student_router

logger = get_logger("app")

MUTATING_METHODS = {"POST", "PUT", "DELETE", "PATCH"}

# Last N non-GET requests, newest at the right
activity_log: deque = deque(maxlen=CONFIG.ACTIVITY_LOG_SIZE)


@asynccontextmanager
async def lifespan(app: FastAPI):
    validate_config(CONFIG)
    try:
        ensure_indexes(db)
    except PyMongoError as e:
        logger.error("MongoDB unavailable at startup, indexes not ensured: %s", e)
    logger.info("Student Result Portal started (%s)", CONFIG.ENVIRONMENT)
    yield


app = FastAPI(
    title="Student Result Portal",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CONFIG.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)
app.add_middleware(GZipMiddleware, minimum_size=1000)


@app.middleware("http")
async def rate_limit_api(request: Request, call_next):
    if request.url.path.startswith("/api/"):
        ok, usage = general_limiter.hit(client_key(request))
        if not ok:
            logger.warning("Rate limit hit for %s on %s", usage["key"], request.url.path)
            return JSONResponse(
                status_code=429,
                content={"detail": "Too many requests, please try again later."},
            )
    return await call_next(request)


@app.middleware("http")
async def cache_and_timing(request: Request, call_next):
    start = time.perf_counter()

    if request.method in MUTATING_METHODS:
        activity_log.append({
            "timestamp": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
            "method": request.method,
            "path": request.url.path,
            "ip": client_key(request),
            "user_agent": (request.headers.get("user-agent") or "")[:50],
        })
        logger.debug("%s %s from %s", request.method, request.url.path, client_key(request))

    response = await call_next(request)

    if request.method in MUTATING_METHODS:
        response.headers["Cache-Control"] = "no-store"
    elif request.url.path.startswith("/api/"):
        response.headers["Cache-Control"] = "private, max-age=300"

    duration_ms = (time.perf_counter() - start) * 1000
    if duration_ms > CONFIG.SLOW_REQUEST_MS:
        logger.warning("Slow request: %s %s took %.0fms", request.method, request.url.path, duration_ms)
    return response


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = []
    for err in exc.errors():
        field = ".".join(str(part) for part in err.get("loc", ()) if part != "body")
        msg = err.get("msg", "Invalid value").removeprefix("Value error, ")
        errors.append(f"{field}: {msg}" if field else msg)
    return JSONResponse(status_code=400, content={"message": "Validation failed", "errors": errors})


@app.exception_handler(DuplicateKeyError)
async def duplicate_key_handler(request: Request, exc: DuplicateKeyError):
    key_pattern = (exc.details or {}).get("keyPattern") or {}
    field = next(iter(key_pattern), "Record")
    return JSONResponse(status_code=409, content={"detail": f"{field} already exists"})


@app.get("/")
def root_index():
    return {"message": "Student Result Management System API is running"}


@app.get("/api/activity-log", dependencies=[Depends(require_role(["admin"]))])
def get_activity_log():
    return list(activity_log)[-50:][::-1]


app.include_router(auth_router)
app.include_router(student_router)
app.include_router(result_router)
app.include_router(bulk_router)
