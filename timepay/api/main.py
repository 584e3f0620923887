from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from timepay.api.routes import (
    clock,
    health,
    metrics,
    pay_periods,
    paycheck,
    settings as settings_routes,
    time_entries,
    timesheet,
)
from timepay.core.config import settings
from timepay.core.logging import configure_logging, get_logger
from timepay.core.monitoring import configure_error_monitoring
from timepay.core.observability import configure_observability
from timepay.db.session import init_db
from timepay.errors import NotFound, StateConflict, TimepayError, ValidationError

configure_logging(settings.log_level, json_logs=settings.log_json)
configure_observability()
configure_error_monitoring()
logger = get_logger(__name__)

app = FastAPI(title=settings.app_name)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[str(origin) for origin in settings.cors_origins] or ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(clock.router)
app.include_router(time_entries.router)
app.include_router(pay_periods.router)
app.include_router(timesheet.router)
app.include_router(paycheck.router)
app.include_router(settings_routes.router)
app.include_router(metrics.router)

ERROR_STATUS = (
    (ValidationError, 400),
    (NotFound, 404),
    (StateConflict, 409),
)


@app.exception_handler(TimepayError)
def handle_timepay_error(request: Request, exc: TimepayError) -> JSONResponse:
    status_code = next((code for kind, code in ERROR_STATUS if isinstance(exc, kind)), 400)
    logger.info("request_rejected", path=request.url.path, status=status_code, error=exc.message)
    return JSONResponse(status_code=status_code, content={"detail": exc.message})


@app.on_event("startup")
def startup_event() -> None:
    if settings.auto_create_schema:
        init_db()
    logger.info("startup_complete", env=settings.env)
