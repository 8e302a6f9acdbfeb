import os
import tempfile
from io import BytesIO
from pathlib import Path
from typing import Iterable, Optional, Tuple

# يجب ضبط مجلد التخزين قبل استيراد الحزمة لأن الإعدادات تُحمَّل عند الاستيراد
os.environ.setdefault("PDF_MERGER_STORAGE_DIR", tempfile.mkdtemp(prefix="pdf-merger-tests-"))

import pytest
from PIL import Image
from pypdf import PdfWriter
from reportlab.pdfgen import canvas

from pdf_merger.core.config import Settings
from pdf_merger.models.merge import FileKind, ImageFormat, UploadedFile
from pdf_merger.services.merge_pipeline import MergePipeline
from pdf_merger.storage.local import EphemeralStorage


def blank_pdf(*sizes: Tuple[float, float]) -> bytes:
    writer = PdfWriter()
    for width, height in sizes:
        writer.add_blank_page(width=width, height=height)
    buffer = BytesIO()
    writer.write(buffer)
    return buffer.getvalue()


def text_pdf(*labels: str, size: Tuple[float, float] = (300, 400)) -> bytes:
    packet = BytesIO()
    c = canvas.Canvas(packet, pagesize=size)
    for label in labels:
        c.drawString(40, 40, label)
        c.showPage()
    c.save()
    return packet.getvalue()


def image_bytes(
    size: Tuple[int, int] = (200, 100),
    fmt: str = "PNG",
    mode: str = "RGB",
    dpi: Optional[Tuple[int, int]] = None,
) -> bytes:
    color = (200, 30, 30, 128) if mode == "RGBA" else 120 if mode in ("L", "P") else (200, 30, 30)
    image = Image.new(mode, size, color)
    buffer = BytesIO()
    options = {"dpi": dpi} if dpi else {}
    image.save(buffer, format=fmt, **options)
    return buffer.getvalue()


def image_xobjects(page) -> list:
    xobjects = page["/Resources"].get_object().get("/XObject")
    if xobjects is None:
        return []
    xobjects = xobjects.get_object()
    found = []
    for name in xobjects:
        obj = xobjects[name].get_object()
        if obj.get("/Subtype") == "/Image":
            found.append(obj)
    return found


def list_files(directory: Path) -> list:
    return sorted(p.name for p in directory.iterdir() if p.is_file())


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    settings = Settings(
        storage_dir=tmp_path / "store",
        temp_dir=tmp_path / "store" / "temp",
        outputs_dir=tmp_path / "store" / "out",
        output_retention_seconds=0,
    )
    settings.configure_paths()
    return settings


@pytest.fixture
def storage(tmp_path: Path) -> EphemeralStorage:
    return EphemeralStorage(tmp_path / "ephemeral")


@pytest.fixture
def pipeline(settings: Settings) -> MergePipeline:
    return MergePipeline(
        EphemeralStorage(settings.temp_dir),
        output_storage=EphemeralStorage(settings.outputs_dir),
        settings=settings,
    )


@pytest.fixture
def make_uploaded(tmp_path: Path):
    """إنشاء UploadedFile على القرص مباشرة لاختبار محرك الدمج والترتيب."""
    counter = iter(range(1, 10_000))

    def _make(
        data: bytes,
        filename: str,
        kind: FileKind = FileKind.pdf,
        image_format: Optional[ImageFormat] = None,
        storage_id: Optional[str] = None,
    ) -> UploadedFile:
        index = next(counter)
        storage_id = storage_id or f"file{index}"
        path = tmp_path / f"{storage_id}-{index}{Path(filename).suffix}"
        path.write_bytes(data)
        return UploadedFile(
            storage_id=storage_id,
            path=path,
            filename=filename,
            mime_type="application/pdf" if kind is FileKind.pdf else f"image/{image_format.value}",
            size_bytes=len(data),
            kind=kind,
            image_format=image_format,
        )

    return _make


def page_sizes(pages: Iterable) -> list:
    return [(float(p.mediabox.width), float(p.mediabox.height)) for p in pages]
