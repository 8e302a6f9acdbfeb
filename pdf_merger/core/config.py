from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """إعدادات خدمة الدمج مع تحميل القيم من ملف .env عند توفره."""

    model_config = SettingsConfigDict(
        env_file=Path(__file__).resolve().parents[2] / ".env",
        env_file_encoding="utf-8",
        env_prefix="PDF_MERGER_",
    )

    app_name: str = "PDF Merger API"
    app_version: str = "0.1.0"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    base_dir: Path = Field(default_factory=lambda: Path(__file__).resolve().parents[2])
    storage_dir: Optional[Path] = None
    outputs_dir: Optional[Path] = None
    temp_dir: Optional[Path] = None

    max_file_size_mb: int = Field(default=50, gt=0)
    max_files: int = Field(default=50, gt=0)
    output_retention_seconds: float = Field(default=60.0, ge=0)
    sweep_margin_seconds: float = Field(default=60.0, ge=0)
    output_filename: str = "merged-invoice.pdf"
    respect_image_dpi: bool = True
    normalize_workers: int = Field(default=1, ge=1)

    allow_origins: list[str] = Field(
        default_factory=lambda: ["https://pdf-merger-service-1.onrender.com", "http://localhost:5173"]
    )

    @property
    def max_file_size_bytes(self) -> int:
        return self.max_file_size_mb * 1024 * 1024

    @property
    def stale_after_seconds(self) -> float:
        # أي ملف أقدم من مهلة الاحتفاظ بهامش بسيط لم يعد مطلوبًا
        return self.output_retention_seconds + self.sweep_margin_seconds

    def configure_paths(self) -> None:
        """تهيئة المسارات الافتراضية وإنشاء المجلدات في حال غيابها."""
        self.storage_dir = (self.storage_dir or (self.base_dir / "uploads")).resolve()
        self.outputs_dir = (self.outputs_dir or self.storage_dir).resolve()
        self.temp_dir = (self.temp_dir or (self.storage_dir / "temp")).resolve()

        for directory in (self.storage_dir, self.outputs_dir, self.temp_dir):
            directory.mkdir(parents=True, exist_ok=True)


@lru_cache()
def get_settings() -> Settings:
    settings = Settings()
    settings.configure_paths()
    return settings
