# exam_service/main.py
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from exam_service import models  # noqa
from exam_service.api.v1.endpoints import exams, health, rubrics, submissions
from exam_service.core.config import settings
from exam_service.core.exceptions import (
    ConflictError,
    ExamServiceError,
    NotFoundError,
    ValidationError,
)
from exam_service.core.logging_config import setup_logging
from exam_service.db.base import Base
from exam_service.db.session import engine

setup_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

app = FastAPI(title=settings.PROJECT_NAME)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
def on_startup():
    if settings.REPOSITORY_BACKEND == "sql":
        Base.metadata.create_all(bind=engine)


_STATUS_CODES = [
    (ValidationError, 400),
    (NotFoundError, 404),
    (ConflictError, 409),
]


@app.exception_handler(ExamServiceError)
def handle_service_error(request: Request, exc: ExamServiceError):
    for exc_type, status_code in _STATUS_CODES:
        if isinstance(exc, exc_type):
            return JSONResponse(status_code=status_code, content={"error": str(exc)})
    logger.error(f"{request.method} {request.url.path} failed: {exc}", exc_info=exc)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


@app.exception_handler(HTTPException)
def handle_http_exception(request: Request, exc: HTTPException):
    return JSONResponse(status_code=exc.status_code, content={"error": str(exc.detail)})


@app.exception_handler(RequestValidationError)
def handle_request_validation(request: Request, exc: RequestValidationError):
    messages = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        messages.append(f"{location}: {error.get('msg')}" if location else error.get("msg"))
    return JSONResponse(status_code=400, content={"error": "; ".join(messages)})


@app.exception_handler(Exception)
def handle_unexpected(request: Request, exc: Exception):
    logger.error(f"{request.method} {request.url.path} failed: {exc}", exc_info=exc)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


app.include_router(submissions.router, prefix="/api/exam")
app.include_router(exams.router, prefix="/api/exam")
app.include_router(rubrics.router, prefix="/api/exam")
app.include_router(health.router, prefix="/api/health")
