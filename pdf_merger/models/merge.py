from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Dict, Optional, Tuple


class FileKind(str, Enum):
    pdf = "pdf"
    image = "image"


class ImageFormat(str, Enum):
    png = "png"
    jpeg = "jpeg"
    webp = "webp"


# نوع MIME -> (النوع، صيغة الصورة، الامتداد)
SUPPORTED_TYPES: Dict[str, Tuple[FileKind, Optional[ImageFormat], str]] = {
    "application/pdf": (FileKind.pdf, None, ".pdf"),
    "image/png": (FileKind.image, ImageFormat.png, ".png"),
    "image/jpeg": (FileKind.image, ImageFormat.jpeg, ".jpg"),
    "image/jpg": (FileKind.image, ImageFormat.jpeg, ".jpg"),
    "image/webp": (FileKind.image, ImageFormat.webp, ".webp"),
}


@dataclass
class IncomingFile:
    """ملف كما تسلّمه طبقة النقل قبل الحفظ."""

    filename: str
    mime_type: str
    data: bytes
    client_id: Optional[str] = None

    @property
    def size_bytes(self) -> int:
        return len(self.data)


@dataclass
class UploadedFile:
    storage_id: str
    path: Path
    filename: str
    mime_type: str
    size_bytes: int
    kind: FileKind
    image_format: Optional[ImageFormat] = None

    @property
    def is_pdf(self) -> bool:
        return self.kind is FileKind.pdf


@dataclass
class MergeResult:
    path: Path
    suggested_filename: str
    page_count: int
    size_bytes: int

    def read_bytes(self) -> bytes:
        return self.path.read_bytes()
