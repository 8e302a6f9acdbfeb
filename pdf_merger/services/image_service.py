from __future__ import annotations

from io import BytesIO
from typing import Optional, Tuple

from PIL import Image, UnidentifiedImageError
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas

from pdf_merger.core.errors import ProcessingError
from pdf_merger.core.logging import configure_logging
from pdf_merger.models.merge import ImageFormat

logger = configure_logging()

# الأنماط التي يضمّنها ReportLab مباشرة
_EMBEDDABLE_MODES = {"RGB", "RGBA", "L", "CMYK"}

# أكبر بعد تقبله قارئات PDF (200 بوصة)
MAX_PAGE_POINTS = 14400.0

_DECODE_ERRORS = (
    UnidentifiedImageError,
    Image.DecompressionBombError,
    OSError,
    EOFError,
    SyntaxError,
    ValueError,
)


class ImageNormalizer:
    """تحويل صورة واحدة (PNG/JPEG/WEBP) إلى ملف PDF من صفحة واحدة بحجم الصورة."""

    def __init__(self, respect_dpi: bool = True) -> None:
        self.respect_dpi = respect_dpi

    def normalize(self, data: bytes, filename: str, image_format: Optional[ImageFormat] = None) -> bytes:
        try:
            image = self._open(data, image_format)
        except _DECODE_ERRORS as exc:
            logger.warning("تعذر قراءة الصورة %s: %s", filename, exc)
            raise ProcessingError.for_file(filename) from exc

        with image:
            width, height = self.page_size(image)
            try:
                return self._render_page(self._embeddable(image), width, height, title=filename)
            except Exception as exc:
                logger.warning("تعذر تضمين الصورة %s: %s", filename, exc)
                raise ProcessingError.for_file(filename) from exc

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    @staticmethod
    def _render_page(image: Image.Image, width: float, height: float, title: str) -> bytes:
        packet = BytesIO()
        c = canvas.Canvas(packet, pagesize=(width, height), pageCompression=1)
        c.setTitle(title)
        c.drawImage(ImageReader(image), 0, 0, width=width, height=height, mask="auto")
        c.showPage()
        c.save()
        return packet.getvalue()

    @staticmethod
    def _open(data: bytes, image_format: Optional[ImageFormat]) -> Image.Image:
        image = Image.open(BytesIO(data))
        image.load()
        if image_format is ImageFormat.webp or image.format == "WEBP":
            image = ImageNormalizer._transcode_to_png(image)
        return image

    @staticmethod
    def _transcode_to_png(image: Image.Image) -> Image.Image:
        """إعادة ترميز WEBP إلى PNG قبل التضمين مع الحفاظ على معلومات الدقة."""
        dpi = image.info.get("dpi")
        buffer = BytesIO()
        with image:
            if image.mode not in ("RGB", "RGBA"):
                image = image.convert("RGBA")
            image.save(buffer, format="PNG")
        buffer.seek(0)
        png = Image.open(buffer)
        png.load()
        if dpi:
            png.info["dpi"] = dpi
        return png

    @staticmethod
    def _embeddable(image: Image.Image) -> Image.Image:
        if image.mode in _EMBEDDABLE_MODES:
            return image
        has_alpha = image.mode in ("LA", "PA") or "transparency" in image.info
        return image.convert("RGBA" if has_alpha else "RGB")

    def page_size(self, image: Image.Image) -> Tuple[float, float]:
        """حجم الصفحة بالنقاط: بكسل واحد = نقطة واحدة (72 DPI) ما لم تحدد الصورة دقتها.

        لا يتجاوز أي بعد ``MAX_PAGE_POINTS``: دقة غير معقولة تُهمل، والصور الأكبر
        من الحد تُصغَّر مع الحفاظ على النسبة.
        """
        width, height = image.size
        dpi = image.info.get("dpi") if self.respect_dpi else None
        if dpi:
            try:
                dpi_x, dpi_y = float(dpi[0]), float(dpi[1])
            except (TypeError, ValueError, IndexError):
                dpi_x = dpi_y = 0.0
            if dpi_x > 0 and dpi_y > 0:
                scaled = (width * 72.0 / dpi_x, height * 72.0 / dpi_y)
                if max(scaled) <= MAX_PAGE_POINTS:
                    return scaled
        return self._fit(float(width), float(height))

    @staticmethod
    def _fit(width: float, height: float) -> Tuple[float, float]:
        largest = max(width, height)
        if largest <= MAX_PAGE_POINTS:
            return width, height
        ratio = MAX_PAGE_POINTS / largest
        return width * ratio, height * ratio
