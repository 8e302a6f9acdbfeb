from typing import Optional, Sequence, Tuple

from pdf_merger.core.errors import ValidationError
from pdf_merger.models.merge import SUPPORTED_TYPES, FileKind, ImageFormat, IncomingFile

MAX_CLIENT_ID_LENGTH = 64


def normalize_mime_type(mime_type: Optional[str]) -> str:
    """إزالة المعاملات الإضافية مثل charset وتوحيد حالة الأحرف."""
    return (mime_type or "").split(";", 1)[0].strip().lower()


def classify(mime_type: Optional[str], filename: str) -> Tuple[FileKind, Optional[ImageFormat], str]:
    """تحديد نوع الملف مرة واحدة عند الاستلام، أو رفع ValidationError."""
    entry = SUPPORTED_TYPES.get(normalize_mime_type(mime_type))
    if entry is None:
        raise ValidationError(
            f"Invalid file type for {filename}. Only PDF and images (JPEG, PNG, WEBP) are allowed.",
            filename=filename,
        )
    return entry


def validate_file_size(upload: IncomingFile, max_size: int) -> None:
    if upload.size_bytes <= 0:
        raise ValidationError(f"File is empty: {upload.filename}", filename=upload.filename)
    if upload.size_bytes > max_size:
        mb = f"{max_size / (1024 * 1024):g}"
        raise ValidationError(
            f"File too large: {upload.filename}. Maximum size is {mb} MB.",
            filename=upload.filename,
        )


def validate_client_id(upload: IncomingFile) -> None:
    # المعرف كاملًا يجب أن يبقى بادئة لمعرف التخزين
    if upload.client_id and len(upload.client_id) > MAX_CLIENT_ID_LENGTH:
        raise ValidationError(
            f"File id too long for {upload.filename}. Maximum is {MAX_CLIENT_ID_LENGTH} characters.",
            filename=upload.filename,
        )


def validate_batch(files: Sequence[IncomingFile], *, max_files: int, max_size: int) -> None:
    """التحقق من الدفعة كاملة قبل حفظ أي ملف."""
    if not files:
        raise ValidationError("No files uploaded")
    if len(files) > max_files:
        raise ValidationError(f"Too many files. Maximum is {max_files} files per request.")
    for upload in files:
        classify(upload.mime_type, upload.filename)
        validate_file_size(upload, max_size)
        validate_client_id(upload)
