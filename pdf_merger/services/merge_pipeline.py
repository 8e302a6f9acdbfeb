from __future__ import annotations

import threading
from io import BytesIO
from pathlib import Path
from typing import Any, List, Optional, Sequence
from uuid import uuid4

from pypdf import PdfReader

from pdf_merger.core.config import Settings, get_settings
from pdf_merger.core.logging import configure_logging
from pdf_merger.models.merge import IncomingFile, MergeResult, UploadedFile
from pdf_merger.services.image_service import ImageNormalizer
from pdf_merger.services.pdf_service import PDFService
from pdf_merger.storage.local import EphemeralStorage
from pdf_merger.utils.file_utils import classify, validate_batch
from pdf_merger.utils.ordering import parse_order_descriptor, resolve_order

logger = configure_logging()


class MergePipeline:
    """تنفيذ طلب دمج كامل: التحقق، الحفظ المؤقت، الترتيب، الدمج، ثم التنظيف."""

    def __init__(
        self,
        storage: EphemeralStorage,
        output_storage: EphemeralStorage | None = None,
        pdf_service: PDFService | None = None,
        settings: Settings | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.storage = storage
        self.output_storage = output_storage or storage
        self.pdf_service = pdf_service or PDFService(
            ImageNormalizer(respect_dpi=self.settings.respect_image_dpi),
            workers=self.settings.normalize_workers,
        )

    def run(self, files: Sequence[IncomingFile], order: Any = None) -> MergeResult:
        validate_batch(
            files,
            max_files=self.settings.max_files,
            max_size=self.settings.max_file_size_bytes,
        )

        stored: List[UploadedFile] = []
        try:
            for upload in files:
                stored.append(self.ingest(upload))

            sequence = resolve_order(parse_order_descriptor(order), stored)
            data = self.pdf_service.merge(sequence)
            page_count = len(PdfReader(BytesIO(data)).pages)
            output_path = self.output_storage.put(data, suffix=".pdf", name=f"merged-{uuid4().hex}")
        finally:
            self.storage.cleanup(item.path for item in stored)

        logger.info("تم دمج %s ملفات في ملف واحد من %s صفحة: %s", len(stored), page_count, output_path.name)
        return MergeResult(
            path=output_path,
            suggested_filename=self.settings.output_filename,
            page_count=page_count,
            size_bytes=len(data),
        )

    def ingest(self, upload: IncomingFile) -> UploadedFile:
        kind, image_format, suffix = classify(upload.mime_type, upload.filename)
        storage_id = self._storage_id(upload)
        path = self.storage.put(upload.data, suffix=suffix, name=storage_id)
        return UploadedFile(
            storage_id=storage_id,
            path=path,
            filename=upload.filename,
            mime_type=upload.mime_type,
            size_bytes=upload.size_bytes,
            kind=kind,
            image_format=image_format,
        )

    def finish(self, result: MergeResult, delay: Optional[float] = None) -> threading.Timer:
        """جدولة حذف الملف الناتج بعد انتهاء التنزيل."""
        delay = self.settings.output_retention_seconds if delay is None else delay
        return self.output_storage.remove_after(result.path, delay)

    @staticmethod
    def _storage_id(upload: IncomingFile) -> str:
        unique = uuid4().hex
        if upload.client_id:
            return f"{upload.client_id}-{unique}"
        stem = Path(upload.filename or "").stem
        return f"{unique}-{EphemeralStorage.safe_name(stem, max_len=40)}"
