"""
타임존 유틸리티

내부 저장: UTC ISO 문자열 | 집계 기준: 테넌트 현지 영업일
"""

from datetime import date, datetime, time, timedelta, timezone
from typing import Callable
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

# 현재 시각을 돌려주는 함수 (테스트에서 고정 시계로 교체)
Clock = Callable[[], datetime]


def now_utc() -> datetime:
    """현재 UTC 시간 반환 (타임존 명시)

    datetime.now(timezone.utc)의 축약형.

    Returns:
        현재 UTC 시간 (tzinfo=timezone.utc)
    """
    return datetime.now(timezone.utc)


def fixed_clock(moment: datetime) -> Clock:
    """항상 같은 시각을 반환하는 Clock 생성

    Args:
        moment: 고정 시각 (naive면 UTC로 간주)
    """
    fixed = ensure_utc(moment)
    return lambda: fixed


def ensure_utc(dt: datetime) -> datetime:
    """datetime을 UTC aware로 정규화

    naive datetime은 UTC로 간주.
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def get_zone(tz_name: str) -> ZoneInfo:
    """IANA 타임존 이름으로 ZoneInfo 반환

    Raises:
        ValueError: 알 수 없는 타임존
    """
    try:
        return ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ValueError(f"알 수 없는 타임존: {tz_name}") from e


def local_date(dt: datetime, tz_name: str) -> date:
    """UTC 시각이 속한 테넌트 현지 날짜"""
    return ensure_utc(dt).astimezone(get_zone(tz_name)).date()


def day_bounds(day: date, tz_name: str) -> tuple[datetime, datetime]:
    """현지 달력 하루의 [시작, 끝) 구간을 UTC로 반환

    DST 전환일에도 현지 자정 기준으로 계산.

    Args:
        day: 현지 날짜
        tz_name: IANA 타임존 이름

    Returns:
        (start_utc, end_utc)

    Example:
        >>> day_bounds(date(2024, 5, 1), "America/Argentina/Buenos_Aires")
        (datetime(2024, 5, 1, 3, 0, tzinfo=utc), datetime(2024, 5, 2, 3, 0, tzinfo=utc))
    """
    zone = get_zone(tz_name)
    start = datetime.combine(day, time.min, tzinfo=zone)
    end = datetime.combine(day + timedelta(days=1), time.min, tzinfo=zone)
    return start.astimezone(timezone.utc), end.astimezone(timezone.utc)


def to_db_ts(dt: datetime) -> str:
    """DB 저장용 UTC ISO 문자열

    모든 타임스탬프를 같은 형식으로 저장해야 문자열 비교로 구간 조회 가능.
    """
    return ensure_utc(dt).isoformat(timespec="microseconds")


def from_db_ts(value: str | None) -> datetime | None:
    """DB 문자열 → UTC aware datetime"""
    if value is None:
        return None
    return ensure_utc(datetime.fromisoformat(value))


def date_range_bounds(
    start: date | None,
    end: date | None,
    tz_name: str,
) -> tuple[datetime | None, datetime | None]:
    """현지 날짜 범위(양 끝 포함)를 UTC [start, end) 구간으로 변환

    Example:
        >>> date_range_bounds(date(2024, 5, 1), date(2024, 5, 1), "UTC")
        (datetime(2024, 5, 1, 0, 0, tzinfo=utc), datetime(2024, 5, 2, 0, 0, tzinfo=utc))
    """
    start_utc = day_bounds(start, tz_name)[0] if start is not None else None
    end_utc = day_bounds(end, tz_name)[1] if end is not None else None
    return start_utc, end_utc
