"""
표시 이름 Projection

저장소 조회 결과(타입 있는 모델)에 사용자/고객 표시 이름을 채움.
이름 조회는 디렉터리에 한 번만 일괄 요청하며 항상 같은 테넌트 범위.
"""

from dataclasses import replace
from typing import Sequence

from adapters.interfaces import IDirectory
from core.ledger.models import CashMovement, CustomerDebt, Expense

UNKNOWN_USER = "Unknown"


async def project_movements(
    directory: IDirectory,
    client_id: int,
    movements: Sequence[CashMovement],
) -> list[CashMovement]:
    """CashMovement 목록에 user_name/customer_name 채움

    삭제된 사용자는 "Unknown", 고객이 없으면 None.
    """
    if not movements:
        return []

    user_names = await directory.get_user_names(
        client_id, [m.user_id for m in movements]
    )
    customer_names = await directory.get_customer_names(
        client_id, [m.customer_id for m in movements if m.customer_id is not None]
    )

    return [
        replace(
            m,
            user_name=user_names.get(m.user_id, UNKNOWN_USER),
            customer_name=(
                customer_names.get(m.customer_id) if m.customer_id is not None else None
            ),
        )
        for m in movements
    ]


async def project_expenses(
    directory: IDirectory,
    client_id: int,
    expenses: Sequence[Expense],
) -> list[Expense]:
    """Expense 목록에 user_name 채움"""
    if not expenses:
        return []

    user_names = await directory.get_user_names(
        client_id, [e.user_id for e in expenses]
    )
    return [
        replace(e, user_name=user_names.get(e.user_id, UNKNOWN_USER))
        for e in expenses
    ]


async def project_debts(
    directory: IDirectory,
    client_id: int,
    debts: Sequence[CustomerDebt],
) -> list[CustomerDebt]:
    """CustomerDebt 목록에 customer_name 채움"""
    if not debts:
        return []

    customer_names = await directory.get_customer_names(
        client_id, [d.customer_id for d in debts]
    )
    return [replace(d, customer_name=customer_names.get(d.customer_id)) for d in debts]
