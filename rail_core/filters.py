from __future__ import annotations

from dataclasses import asdict, dataclass, field, replace
from typing import Iterable, List, Literal, Optional

from rail_core.config import DEFAULT_PAGE_SIZE, get_settings
from rail_core.data import RECORD_COLUMNS

SortDirection = Literal["asc", "desc"]

MAX_PAGE_SIZE = 500


@dataclass(frozen=True)
class DateRange:
    start: Optional[str] = None
    end: Optional[str] = None


@dataclass(frozen=True)
class FilterOptions:
    date_range: Optional[DateRange] = None
    train_numbers: List[str] = field(default_factory=list)
    routes: List[str] = field(default_factory=list)
    min_delay: Optional[float] = None
    max_delay: Optional[float] = None
    search_query: str = ""
    sort_by: Optional[str] = None
    sort_direction: SortDirection = "asc"
    page: Optional[int] = None
    page_size: Optional[int] = None


DEFAULT_FILTERS = FilterOptions(page=1, page_size=DEFAULT_PAGE_SIZE, sort_by="timestamp", sort_direction="desc")


def _as_str_list(values: Optional[Iterable[object]]) -> List[str]:
    if not values:
        return []
    if isinstance(values, str):
        values = [values]
    return [str(v).strip() for v in values if v is not None and str(v).strip()]


def _as_float(value: object) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _as_positive_int(value: object) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        out = int(value)
    except (TypeError, ValueError):
        return None
    return out if out >= 1 else None


def _as_date_range(raw: object) -> Optional[DateRange]:
    if isinstance(raw, DateRange):
        return raw if (raw.start or raw.end) else None
    if not isinstance(raw, dict):
        return None
    start = (str(raw.get("start") or "")).strip() or None
    end = (str(raw.get("end") or "")).strip() or None
    if start is None and end is None:
        return None
    return DateRange(start=start, end=end)


def normalize_filters(raw: dict) -> FilterOptions:
    sort_by = raw.get("sort_by")
    sort_by = str(sort_by) if sort_by in RECORD_COLUMNS else None

    sort_direction = str(raw.get("sort_direction") or "asc").lower()
    if sort_direction not in ("asc", "desc"):
        sort_direction = "asc"

    page_size = _as_positive_int(raw.get("page_size"))
    if page_size is not None:
        page_size = min(MAX_PAGE_SIZE, page_size)

    return FilterOptions(
        date_range=_as_date_range(raw.get("date_range")),
        train_numbers=_as_str_list(raw.get("train_numbers")),
        routes=_as_str_list(raw.get("routes")),
        min_delay=_as_float(raw.get("min_delay")),
        max_delay=_as_float(raw.get("max_delay")),
        search_query=(raw.get("search_query") or "").strip(),
        sort_by=sort_by,
        sort_direction=sort_direction,  # type: ignore[arg-type]
        page=_as_positive_int(raw.get("page")),
        page_size=page_size,
    )


def apply_filters(current: FilterOptions, updates: dict) -> FilterOptions:
    """Merge `updates` over `current`; any change sends the user back to page 1
    unless the update itself names a page. Updates go through the same
    validation as `normalize_filters`; an invalid page falls back to 1."""
    known = {k: v for k, v in updates.items() if k in FilterOptions.__dataclass_fields__}
    merged = normalize_filters({**asdict(current), **known})
    if known.get("page") is None:
        return replace(merged, page=1)
    return replace(merged, page=merged.page or 1)


def clear_filters(page_size: Optional[int] = None) -> FilterOptions:
    return replace(DEFAULT_FILTERS, page_size=page_size or get_settings().default_page_size)


def without_pagination(filters: FilterOptions) -> FilterOptions:
    return replace(filters, page=None, page_size=None)
