from __future__ import annotations

import re
import threading
import time
from pathlib import Path
from typing import Iterable, List, Optional
from uuid import uuid4

from pdf_merger.core.errors import StorageError
from pdf_merger.core.logging import configure_logging

logger = configure_logging()

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


class EphemeralStorage:
    """تخزين مؤقت على القرص للملفات المرفوعة والملف المدموج مع حذف مضمون قدر الإمكان."""

    def __init__(self, base_dir: Path) -> None:
        self.base_dir = Path(base_dir)
        self.base_dir.mkdir(parents=True, exist_ok=True)

    @staticmethod
    def safe_name(name: str, max_len: int = 150) -> str:
        cleaned = _UNSAFE_CHARS.sub("_", (name or "").strip()).strip("._")
        return cleaned[:max_len] or "file"

    @staticmethod
    def _generate_filename(suffix: str, name: Optional[str] = None) -> str:
        suffix = suffix if suffix.startswith(".") else f".{suffix.lstrip('.')}"
        stem = EphemeralStorage.safe_name(name) if name else uuid4().hex
        return f"{stem}{suffix}"

    def put(self, data: bytes, *, suffix: str, name: Optional[str] = None) -> Path:
        """حفظ البيانات تحت معرف جديد وإرجاع المسار. يرفع StorageError عند الفشل."""
        target_path = self.base_dir / self._generate_filename(suffix, name)
        try:
            # "xb" يمنع الكتابة فوق ملف قائم بنفس المعرف
            with target_path.open("xb") as buffer:
                buffer.write(data)
        except FileExistsError as exc:
            raise StorageError(f"Storage identifier already in use: {target_path.name}") from exc
        except OSError as exc:
            target_path.unlink(missing_ok=True)
            logger.error("فشل حفظ الملف المؤقت %s: %s", target_path.name, exc)
            raise StorageError("Failed to persist temporary file") from exc
        return target_path

    def remove(self, path: Optional[Path]) -> None:
        if not path:
            return
        try:
            Path(path).unlink(missing_ok=True)
        except OSError as exc:
            logger.warning("تعذر حذف الملف المؤقت %s: %s", path, exc)

    def remove_after(self, path: Path, delay: float) -> threading.Timer:
        """جدولة حذف الملف بعد مهلة دون انتظار التنفيذ."""
        timer = threading.Timer(delay, self.remove, args=(path,))
        timer.daemon = True
        timer.start()
        return timer

    def cleanup(self, paths: Iterable[Optional[Path]]) -> None:
        for path in paths:
            self.remove(path)

    def sweep_stale(self, max_age: float) -> List[Path]:
        """حذف الملفات الأقدم من المدة المحددة (مثلًا بعد إعادة تشغيل أثناء مهلة الحذف)."""
        now = time.time()
        removed: List[Path] = []
        for path in self.base_dir.iterdir():
            if not path.is_file():
                continue
            try:
                age = now - path.stat().st_mtime
            except OSError:
                continue
            if age > max_age:
                self.remove(path)
                removed.append(path)
        if removed:
            logger.info("تم حذف %s ملفات مؤقتة منتهية الصلاحية من %s", len(removed), self.base_dir)
        return removed
