"""
테스트 공통 상수와 헬퍼

테넌트 타임존은 UTC-3 (America/Argentina/Buenos_Aires).
"""

from datetime import datetime, timedelta, timezone

TZ = "America/Argentina/Buenos_Aires"

CLIENT_ID = 1
OTHER_CLIENT_ID = 2
SYSTEM_USER_ID = 1
USER_ID = 7
CUSTOMER_ID = 10

# 2024-05-10 12:00 (현지) = 15:00 UTC
NOW = datetime(2024, 5, 10, 15, 0, tzinfo=timezone.utc)


def utc(year: int, month: int, day: int, hour: int = 0, minute: int = 0) -> datetime:
    return datetime(year, month, day, hour, minute, tzinfo=timezone.utc)


class FakeClock:
    """테스트용 시계 (advance로 시간 이동)"""

    def __init__(self, start: datetime = NOW):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now = self.now + timedelta(**kwargs)

    def set(self, moment: datetime) -> None:
        self.now = moment
