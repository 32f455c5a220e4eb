from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from rail_core.config import get_settings
from rail_core.filters import MAX_PAGE_SIZE


class DateRangeModel(BaseModel):
    start: Optional[str] = None
    end: Optional[str] = None


class FilterOptionsModel(BaseModel):
    date_range: Optional[DateRangeModel] = None
    train_numbers: List[str] = Field(default_factory=list)
    routes: List[str] = Field(default_factory=list)
    min_delay: Optional[float] = None
    max_delay: Optional[float] = None
    search_query: str = ""
    sort_by: Optional[str] = "timestamp"
    sort_direction: Literal["asc", "desc"] = "desc"
    page: int = Field(default=1, ge=1)
    page_size: int = Field(default_factory=lambda: get_settings().table_page_size, ge=1, le=MAX_PAGE_SIZE)


class MetaListResponse(BaseModel):
    values: List[str]


class ErrorResponse(BaseModel):
    error: str
    type: str
