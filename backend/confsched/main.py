from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from confsched.api.routes import health, notifications, parameters, schedules
from confsched.core.config import get_settings
from confsched.core.exceptions import AppError, ScheduleApiError
from confsched.core.middleware import SecurityHeadersMiddleware
from confsched.db.bootstrap import ensure_runtime_schema_compatibility

settings = get_settings()


@asynccontextmanager
async def lifespan(_: FastAPI):
    ensure_runtime_schema_compatibility()
    yield


async def app_error_handler(request: Request, exc: AppError):
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": exc.message, "details": exc.details},
    )


async def schedule_error_handler(request: Request, exc: ScheduleApiError):
    return JSONResponse(
        status_code=exc.status_code,
        content={"errorCode": exc.error_code, "message": exc.message, **exc.details},
    )


app = FastAPI(title=settings.project_name, lifespan=lifespan)
app.add_exception_handler(ScheduleApiError, schedule_error_handler)
app.add_exception_handler(AppError, app_error_handler)

app.add_middleware(SecurityHeadersMiddleware, settings=settings)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router, prefix=settings.api_prefix, tags=["health"])
app.include_router(parameters.router, prefix=settings.api_prefix, tags=["scheduling-parameters"])
app.include_router(schedules.router, prefix=settings.api_prefix, tags=["schedule"])
app.include_router(notifications.router, prefix=settings.api_prefix, tags=["notifications"])
