from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from io import BytesIO
from typing import Dict, Sequence

from pypdf import PdfReader, PdfWriter

from pdf_merger.core.errors import ProcessingError
from pdf_merger.core.logging import configure_logging
from pdf_merger.models.merge import UploadedFile
from pdf_merger.services.image_service import ImageNormalizer

logger = configure_logging()


class PDFService:
    """دمج ملفات PDF والصور المرتبة في مستند PDF واحد."""

    def __init__(self, normalizer: ImageNormalizer | None = None, workers: int = 1) -> None:
        self.normalizer = normalizer or ImageNormalizer()
        self.workers = max(1, workers)

    # ------------------------------------------------------------------
    # دمج الملفات بالترتيب المحدد
    # ------------------------------------------------------------------
    def merge(self, sequence: Sequence[UploadedFile]) -> bytes:
        """إرجاع بايتات المستند المدموج، أو رفع ProcessingError عند فشل أي ملف.

        ملفات PDF تُنسخ صفحاتها كما هي بترتيبها الأصلي، وكل صورة تضيف صفحة واحدة.
        """
        prepared = self._normalize_in_parallel(sequence) if self.workers > 1 else {}

        writer = PdfWriter()
        for index, item in enumerate(sequence):
            try:
                if item.is_pdf:
                    reader = PdfReader(str(item.path))
                else:
                    data = prepared[index] if index in prepared else self._normalize(item)
                    reader = PdfReader(BytesIO(data))
                self._append(writer, reader, item)
            except ProcessingError:
                raise
            except Exception as exc:
                logger.warning("فشل معالجة الملف %s: %s", item.filename, exc)
                raise ProcessingError.for_file(item.filename) from exc

        return self._write_writer(writer)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _normalize_in_parallel(self, sequence: Sequence[UploadedFile]) -> Dict[int, bytes]:
        images = [(index, item) for index, item in enumerate(sequence) if not item.is_pdf]
        if len(images) < 2:
            return {}

        # map يعيد النتائج بترتيب الإدخال وليس بترتيب الانتهاء
        with ThreadPoolExecutor(max_workers=self.workers) as executor:
            results = list(executor.map(lambda pair: self._normalize(pair[1]), images))

        return {index: data for (index, _), data in zip(images, results)}

    def _normalize(self, item: UploadedFile) -> bytes:
        try:
            data = item.path.read_bytes()
        except OSError as exc:
            raise ProcessingError.for_file(item.filename) from exc
        return self.normalizer.normalize(data, item.filename, item.image_format)

    @staticmethod
    def _append(writer: PdfWriter, reader: PdfReader, item: UploadedFile) -> None:
        if reader.is_encrypted:
            raise ProcessingError(f"Encrypted PDF is not supported: {item.filename}", filename=item.filename)

        if len(reader.pages) == 0:
            raise ProcessingError(f"PDF has no pages: {item.filename}", filename=item.filename)

        for page in reader.pages:
            writer.add_page(page)

    @staticmethod
    def _write_writer(writer: PdfWriter) -> bytes:
        buffer = BytesIO()
        writer.write(buffer)
        return buffer.getvalue()
