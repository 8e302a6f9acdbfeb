from functools import lru_cache
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile
from fastapi.responses import FileResponse
from starlette.background import BackgroundTask
from starlette.concurrency import run_in_threadpool

from pdf_merger.core.config import get_settings
from pdf_merger.core.logging import configure_logging
from pdf_merger.models import ErrorResponse, IncomingFile
from pdf_merger.services.merge_pipeline import MergePipeline
from pdf_merger.storage.local import EphemeralStorage
from pdf_merger.utils.ordering import parse_order_descriptor

router = APIRouter(prefix="/api", tags=["PDF Merge"])

logger = configure_logging()


@lru_cache()
def get_pipeline() -> MergePipeline:
    settings = get_settings()
    return MergePipeline(
        EphemeralStorage(settings.temp_dir),
        output_storage=EphemeralStorage(settings.outputs_dir),
        settings=settings,
    )


async def _read_uploads(
    files: List[UploadFile],
    file_ids: List[str],
    max_size: int,
) -> List[IncomingFile]:
    incoming: List[IncomingFile] = []
    for index, upload in enumerate(files):
        # قراءة بايت إضافي فقط لاكتشاف تجاوز الحد دون تحميل الملف كاملًا
        data = await upload.read(max_size + 1)
        incoming.append(
            IncomingFile(
                filename=upload.filename or f"file-{index + 1}",
                mime_type=upload.content_type or "",
                data=data,
                client_id=(file_ids[index] if index < len(file_ids) else None) or None,
            )
        )
    return incoming


@router.post(
    "/merge",
    summary="دمج ملفات PDF والصور بالترتيب المحدد وإرجاع ملف PDF واحد",
    response_class=FileResponse,
    responses={400: {"model": ErrorResponse}, 422: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def merge_files(
    files: Optional[List[UploadFile]] = File(default=None),
    order: Optional[str] = Form(default=None),
    file_ids: Optional[str] = Form(default=None),
    pipeline: MergePipeline = Depends(get_pipeline),
) -> FileResponse:
    incoming = await _read_uploads(
        files or [],
        parse_order_descriptor(file_ids, keep_blank=True),
        pipeline.settings.max_file_size_bytes,
    )
    logger.info("طلب دمج جديد يحتوي على %s ملفات", len(incoming))

    result = await run_in_threadpool(pipeline.run, incoming, order)

    return FileResponse(
        result.path,
        media_type="application/pdf",
        filename=result.suggested_filename,
        background=BackgroundTask(pipeline.finish, result),
    )
