"""Project configuration (paths, page sizes, logging)."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Mapping, Optional

DATA_FILE_NAME = "train_delay_data.json"
DEDUP_OUTPUT_NAME = "train_delay_data_deduplicated.json"
DEDUP_BACKUP_NAME = "train_delay_data_original_backup.json"

DEFAULT_PAGE_SIZE = 50
TABLE_PAGE_SIZE = 25

ENV_DATA_FILE = "RAIL_TRACKER_DATA_FILE"
ENV_LOG_LEVEL = "RAIL_TRACKER_LOG_LEVEL"


def project_root() -> Path:
    """Return repository root assuming this file lives in `<root>/rail_core/config.py`."""
    return Path(__file__).resolve().parents[1]


@dataclass(frozen=True)
class Settings:
    data_file: Path
    dedup_output_file: Path
    dedup_backup_file: Path
    default_page_size: int = DEFAULT_PAGE_SIZE
    table_page_size: int = TABLE_PAGE_SIZE
    log_level: str = "INFO"


def build_settings(env: Optional[Mapping[str, str]] = None) -> Settings:
    env = os.environ if env is None else env
    raw_path = (env.get(ENV_DATA_FILE) or "").strip()
    data_file = Path(raw_path).expanduser() if raw_path else project_root() / "data" / DATA_FILE_NAME
    log_level = (env.get(ENV_LOG_LEVEL) or "INFO").strip().upper() or "INFO"
    return Settings(
        data_file=data_file,
        dedup_output_file=data_file.with_name(DEDUP_OUTPUT_NAME),
        dedup_backup_file=data_file.with_name(DEDUP_BACKUP_NAME),
        log_level=log_level,
    )


@lru_cache(maxsize=1)
def _cached_settings() -> Settings:
    return build_settings()


def get_settings(reload: bool = False) -> Settings:
    if reload:
        clear_settings_cache()
    return _cached_settings()


def clear_settings_cache() -> None:
    _cached_settings.cache_clear()


def configure_logging(level: int | str = logging.INFO) -> None:
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )
