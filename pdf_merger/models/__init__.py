
from .common import ErrorResponse, HealthStatus
from .merge import FileKind, ImageFormat, IncomingFile, MergeResult, SUPPORTED_TYPES, UploadedFile

__all__ = [
    "ErrorResponse",
    "FileKind",
    "HealthStatus",
    "ImageFormat",
    "IncomingFile",
    "MergeResult",
    "SUPPORTED_TYPES",
    "UploadedFile",
]
