"""
Ledger 예외 계층

API 계층은 status_code를 그대로 HTTP 상태 코드로 사용.
ReconciliationRepairError는 모니터 내부에서만 처리되고 HTTP로 나가지 않음.
"""


class LedgerError(Exception):
    """Ledger 공통 예외"""

    status_code: int = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(LedgerError):
    """필수 필드 누락, 잘못된 통화 코드, 음수 금액 등"""

    status_code = 400


class NotFoundError(LedgerError):
    """참조한 사용자/고객/채무가 같은 테넌트에 없음"""

    status_code = 404


class ConflictError(LedgerError):
    """동시 결제 경합, 종료 상태 채무 결제, 중복 역분개"""

    status_code = 409


class PersistenceError(LedgerError):
    """저장소 접근 실패 (SQLite 오류 래핑)"""

    status_code = 500


class ReconciliationRepairError(LedgerError):
    """주문 한 건의 보정 실패

    Args:
        client_id: 테넌트 ID
        source_ref: 보정 대상 주문의 source_ref
        cause: 원인 예외
    """

    def __init__(self, client_id: int, source_ref: str, cause: Exception):
        super().__init__(
            f"주문 {source_ref} 보정 실패 (client_id={client_id}): {cause}"
        )
        self.client_id = client_id
        self.source_ref = source_ref
        self.cause = cause
