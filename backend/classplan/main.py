from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from classplan.api.routes import auth, classes, cpr, divisions, health, rooms, subjects, teachers
from classplan.core.config import get_settings
from classplan.core.exceptions import AppError
from classplan.core.logging import configure_logging
from classplan.core.middleware import RequestSizeLimitMiddleware
from classplan.db.bootstrap import ensure_runtime_schema_compatibility

settings = get_settings()
configure_logging(settings)


@asynccontextmanager
async def lifespan(_: FastAPI):
    ensure_runtime_schema_compatibility()
    yield


async def app_error_handler(request: Request, exc: AppError):
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": exc.message, "code": exc.code, "details": exc.details},
    )


app = FastAPI(title=settings.project_name, lifespan=lifespan)
app.add_exception_handler(AppError, app_error_handler)

app.add_middleware(RequestSizeLimitMiddleware, max_bytes=settings.max_request_size_bytes)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router, prefix=settings.api_prefix, tags=["health"])
app.include_router(auth.router, prefix=f"{settings.api_prefix}/auth", tags=["auth"])
app.include_router(teachers.router, prefix=f"{settings.api_prefix}/teachers", tags=["teachers"])
app.include_router(divisions.router, prefix=settings.api_prefix, tags=["divisions"])
app.include_router(subjects.router, prefix=f"{settings.api_prefix}/subjects", tags=["subjects"])
app.include_router(rooms.router, prefix=f"{settings.api_prefix}/rooms", tags=["rooms"])
app.include_router(classes.router, prefix=f"{settings.api_prefix}/class", tags=["classes"])
app.include_router(cpr.router, prefix=f"{settings.api_prefix}/cpr", tags=["cpr"])
