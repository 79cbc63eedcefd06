"""
타입 정의 모듈

Enum 등 프로세스 전역에서 쓰는 핵심 타입 정의
모든 Enum은 str을 상속하여 문자열 직렬화 가능
"""

from enum import Enum


class Currency(str, Enum):
    """지원 통화

    USD가 기준 통화. ARS/USDT는 관리자 입력 환율로 USD 환산.
    """

    USD = "USD"
    ARS = "ARS"
    USDT = "USDT"

    @classmethod
    def values(cls) -> list[str]:
        """허용 통화 코드 목록"""
        return [c.value for c in cls]


BASE_CURRENCY = Currency.USD


class ProcessName(str, Enum):
    """로그 디렉토리 구분용 프로세스 이름"""

    WEB = "web"
    WORKER = "worker"
