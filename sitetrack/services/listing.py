from __future__ import annotations

import math
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence


def paginate(items: Sequence[Any], page: int = 1, page_size: int = 10) -> Dict[str, Any]:
    """Slice ``items`` into one page. ``page_size == -1`` returns everything on a single page."""
    total = len(items)
    if page_size == -1 or page_size <= 0:
        return {"items": list(items), "page": 1, "page_size": -1, "total": total, "total_pages": 1}
    total_pages = max(1, math.ceil(total / page_size))
    page = min(max(1, page), total_pages)
    start = (page - 1) * page_size
    return {
        "items": list(items[start:start + page_size]),
        "page": page,
        "page_size": page_size,
        "total": total,
        "total_pages": total_pages,
    }


def _as_date(value: Any) -> Optional[date]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        return None


def filter_by_record_date(
    items: Iterable[Mapping[str, Any]],
    year: Optional[int] = None,
    month: Optional[int] = None,
    status: Optional[str] = None,
    date_key: str = "record_date",
) -> List[Mapping[str, Any]]:
    out = []
    for item in items:
        if status and item.get("status") != status:
            continue
        if year or month:
            d = _as_date(item.get(date_key))
            if d is None:
                continue
            if year and d.year != int(year):
                continue
            if month and d.month != int(month):
                continue
        out.append(item)
    return out


def filter_contains(items: Iterable[Mapping[str, Any]], key: str, needle: Optional[str]) -> List[Mapping[str, Any]]:
    if not needle:
        return list(items)
    needle = needle.lower()
    return [i for i in items if needle in str(i.get(key) or "").lower()]
