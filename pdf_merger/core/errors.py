from __future__ import annotations

from typing import Optional


class MergeError(Exception):
    """الخطأ الأساسي لجميع حالات فشل عملية الدمج."""

    def __init__(self, message: str, *, filename: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.filename = filename


class ValidationError(MergeError):
    """نوع الملف أو حجمه أو عدد الملفات خارج الحدود المسموح بها."""


class ProcessingError(MergeError):
    """تعذر قراءة ملف بعينه أو تضمينه داخل المستند الناتج."""

    @classmethod
    def for_file(cls, filename: str) -> "ProcessingError":
        return cls(f"Failed to process {filename}", filename=filename)


class StorageError(MergeError):
    """فشل حفظ ملف مؤقت على القرص."""
