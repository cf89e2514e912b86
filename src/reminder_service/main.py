from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from .routers import reminders as reminders_router
from .settings import get_settings
from .trigger import start_interval_trigger
from .utils import configure_logging

openapi_tags = [
    {"name": "health", "description": "Service health and status endpoints."},
    {
        "name": "reminders",
        "description": "Reminder scheduler trigger: notify due events and todos, re-arm recurring events.",
    },
]

_settings = get_settings()
configure_logging(_settings.log_level)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # The in-process trigger is optional; hosted deployments call the run endpoint instead
    scheduler = start_interval_trigger(_settings) if _settings.enable_interval_trigger else None
    try:
        yield
    finally:
        if scheduler is not None:
            scheduler.shutdown(wait=False)


app = FastAPI(
    title="Reminder Scheduler",
    description="Backend service that delivers push reminders for calendar events and todos.",
    version="0.1.0",
    openapi_tags=openapi_tags,
    lifespan=lifespan,
)


# Global exception handlers for consistent JSON on validation errors
@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """
    Return a consistent JSON structure for request validation errors.

    Response format:
        {
            "error": "ValidationError",
            "detail": [... pydantic/fastapi error details ...],
            "message": "Request validation failed"
        }
    """
    return JSONResponse(
        status_code=422,
        content={
            "error": "ValidationError",
            "message": "Request validation failed",
            "detail": exc.errors(),
        },
    )

# PUBLIC_INTERFACE
@app.get("/", summary="Health Check", tags=["health"])
def health_check():
    """
    Health check endpoint.

    Returns:
        A JSON object indicating service health.
    """
    return {"message": "Healthy", "backend": _settings.persistence_backend}


# Include routers
app.include_router(reminders_router.router)
