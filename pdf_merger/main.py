# pdf_merger/main.py
from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from pdf_merger.api import routers
from pdf_merger.api.merge import get_pipeline
from pdf_merger.core.config import get_settings
from pdf_merger.core.errors import MergeError, ProcessingError, StorageError, ValidationError
from pdf_merger.core.logging import configure_logging
from pdf_merger.models import ErrorResponse, HealthStatus

# === إعدادات وتسجيل ===
settings = get_settings()
logger = configure_logging()

app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
)

# === CORS ===
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allow_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["Content-Disposition"],  # لقراءة اسم الملف من الهيدر
)

# === Routers ===
for router in routers:
    app.include_router(router)

# === Errors ===
ERROR_STATUS = {
    ValidationError: 400,
    ProcessingError: 422,
    StorageError: 500,
}


@app.exception_handler(MergeError)
async def merge_error_handler(request: Request, exc: MergeError) -> JSONResponse:
    status_code = next(
        (code for error_type, code in ERROR_STATUS.items() if isinstance(exc, error_type)),
        500,
    )
    logger.warning("فشل طلب الدمج (%s): %s", status_code, exc.message)
    body = ErrorResponse(error=exc.message, filename=exc.filename)
    return JSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True))


# === Startup ===
@app.on_event("startup")
async def sweep_stale_artifacts() -> None:
    """حذف الملفات المؤقتة المتبقية من تشغيل سابق."""
    pipeline = get_pipeline()
    storages = {storage.base_dir: storage for storage in (pipeline.storage, pipeline.output_storage)}
    for storage in storages.values():
        storage.sweep_stale(pipeline.settings.stale_after_seconds)


# === Basic endpoints ===
@app.get("/")
async def root() -> dict:
    logger.debug("Root endpoint accessed")
    return {"message": "PDF Merger API is running"}


@app.get("/api/health", response_model=HealthStatus)
async def health_check() -> HealthStatus:
    logger.debug("Health check invoked")
    return HealthStatus()
