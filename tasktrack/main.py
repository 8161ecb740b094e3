import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import config
from .database import create_tables
from .routers import daily_plans, tasks, time_entries, updates

logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title="Task Tracker API",
    description="Personal task tracker: tasks, updates, time entries and daily plans",
    version="1.0.0",
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    message = str(first.get("msg", "Invalid request"))
    # pydantic prefixes messages raised from field validators
    if message.startswith("Value error, "):
        return message[len("Value error, "):]
    field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    return f"{field}: {message}" if field else message


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code < 500:
        logger.warning("%s %s -> %s: %s", request.method, request.url.path, exc.status_code, exc.detail)
    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail}, headers=exc.headers)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    message = _validation_message(exc)
    logger.warning("%s %s -> 400: %s", request.method, request.url.path, message)
    return JSONResponse(status_code=400, content={"error": message})


# Include routers
app.include_router(tasks.router, prefix="/api", tags=["tasks"])
app.include_router(updates.router, prefix="/api", tags=["updates"])
app.include_router(time_entries.router, prefix="/api", tags=["time"])
app.include_router(daily_plans.router, prefix="/api", tags=["daily plans"])


# Create tables on startup
@app.on_event("startup")
def on_startup():
    create_tables()


@app.get("/health")
def health_check():
    return {"status": "healthy", "time_tracking": config.ENABLE_TIME_TRACKING}


# Static client last so the API routes match first
app.mount("/", StaticFiles(directory=str(config.STATIC_DIR), html=True), name="static")
