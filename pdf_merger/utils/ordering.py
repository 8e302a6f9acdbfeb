import json
from typing import Any, List, Sequence

from pdf_merger.models.merge import UploadedFile


def parse_order_descriptor(raw: Any, keep_blank: bool = False) -> List[str]:
    """
    تحويل قيمة الترتيب القادمة من العميل (نص JSON أو قائمة) إلى قائمة معرفات.
    أي قيمة غير صالحة تُعامل كقائمة فارغة. مع keep_blank تبقى العناصر الفارغة
    كنصوص فارغة للحفاظ على المواضع.
    """
    if raw is None:
        return []
    if isinstance(raw, (bytes, bytearray)):
        raw = raw.decode("utf-8", errors="ignore")
    if isinstance(raw, str):
        text = raw.strip()
        if not text:
            return []
        try:
            raw = json.loads(text)
        except ValueError:
            return []
    if not isinstance(raw, (list, tuple)):
        return []

    identifiers: List[str] = []
    for item in raw:
        identifier = ""
        if isinstance(item, (str, int)) and not isinstance(item, bool):
            identifier = str(item).strip()
        # المعرف الفارغ يطابق أي ملف لذا يُتجاهل
        if identifier or keep_blank:
            identifiers.append(identifier)
    return identifiers


def resolve_order(descriptor: Sequence[str], files: Sequence[UploadedFile]) -> List[UploadedFile]:
    """
    ترتيب الملفات المستلمة وفق ترتيب العميل.

    لكل معرف يُختار أول ملف غير مستخدم يبدأ معرف تخزينه بهذا المعرف، وتُتجاهل
    المعرفات التي لا تطابق شيئًا. الملفات المتبقية تُضاف بعدها بترتيب الاستلام،
    فيظهر كل ملف مرة واحدة بالضبط.
    """
    consumed = [False] * len(files)
    sequence: List[UploadedFile] = []

    for identifier in descriptor or ():
        if not identifier:
            continue
        for index, item in enumerate(files):
            if not consumed[index] and item.storage_id.startswith(identifier):
                consumed[index] = True
                sequence.append(item)
                break

    sequence.extend(item for index, item in enumerate(files) if not consumed[index])
    return sequence
