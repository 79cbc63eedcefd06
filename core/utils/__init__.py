"""
유틸리티 패키지

source_ref 생성, 금액 정규화, 타임존 처리 등 공통 유틸리티
"""

from core.utils.timezone import (
    Clock,
    now_utc,
    fixed_clock,
    ensure_utc,
    local_date,
    day_bounds,
    date_range_bounds,
    to_db_ts,
    from_db_ts,
)

__all__ = [
    "Clock",
    "now_utc",
    "fixed_clock",
    "ensure_utc",
    "local_date",
    "day_bounds",
    "date_range_bounds",
    "to_db_ts",
    "from_db_ts",
]
