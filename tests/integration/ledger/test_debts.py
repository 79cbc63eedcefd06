"""DebtLifecycleManager 통합 테스트"""

import asyncio
from decimal import Decimal

import pytest

from core.errors import ConflictError, NotFoundError, ValidationError
from core.ledger.debts import DebtLifecycleManager
from core.ledger.models import NewDebtPayment
from core.ledger.store import LedgerStore
from core.ledger.types import DebtStatus, MovementType
from core.types import Currency
from tests.support import CLIENT_ID, CUSTOMER_ID, NOW, OTHER_CLIENT_ID, USER_ID


def _payment(debt_id: int, amount: str, **kwargs) -> NewDebtPayment:
    return NewDebtPayment(
        client_id=kwargs.pop("client_id", CLIENT_ID),
        debt_id=debt_id,
        user_id=USER_ID,
        amount=Decimal(amount),
        **kwargs,
    )


class TestCreateDebt:
    """채무 생성 테스트"""

    @pytest.mark.asyncio
    async def test_create(self, debts: DebtLifecycleManager) -> None:
        debt = await debts.create_debt(
            CLIENT_ID, CUSTOMER_ID, Decimal("500"), order_id="O9", notes="fiado"
        )

        assert debt.status == DebtStatus.VIGENTE
        assert debt.original_amount == Decimal("500.00")
        assert debt.remaining_amount == Decimal("500.00")
        assert debt.paid_amount == Decimal("0.00")
        assert debt.currency == Currency.USD
        assert debt.version == 1
        assert debt.customer_name == "Carlos"
        assert debt.order_id == "O9"

    @pytest.mark.asyncio
    async def test_ars_debt_stored_in_usd(self, debts: DebtLifecycleManager) -> None:
        debt = await debts.create_debt(
            CLIENT_ID, CUSTOMER_ID, "600000", currency="ARS", exchange_rate="1200"
        )

        assert debt.currency == Currency.USD
        assert debt.original_amount == Decimal("500.00")

    @pytest.mark.asyncio
    async def test_unknown_customer(self, debts: DebtLifecycleManager) -> None:
        with pytest.raises(NotFoundError):
            await debts.create_debt(CLIENT_ID, 999, Decimal("10"))

    @pytest.mark.asyncio
    async def test_non_positive_amount(self, debts: DebtLifecycleManager) -> None:
        with pytest.raises(ValidationError):
            await debts.create_debt(CLIENT_ID, CUSTOMER_ID, Decimal("0"))


class TestApplyPayment:
    """결제 적용 테스트"""

    @pytest.mark.asyncio
    async def test_partial_payment(
        self,
        debts: DebtLifecycleManager,
        store: LedgerStore,
    ) -> None:
        debt = await debts.create_debt(CLIENT_ID, CUSTOMER_ID, Decimal("500"))

        outcome = await debts.apply_payment(_payment(debt.id, "200", payment_method="efectivo"))

        assert outcome.debt.remaining_amount == Decimal("300.00")
        assert outcome.debt.paid_amount == Decimal("200.00")
        assert outcome.debt.status == DebtStatus.VIGENTE
        assert outcome.debt.version == 2
        assert outcome.excess_usd == Decimal("0.00")
        assert outcome.payment.amount_usd == Decimal("200.00")
        assert outcome.payment.payment_date == NOW

        # pago_deuda 이동이 함께 기록됨
        movement = outcome.movement
        assert movement is not None
        assert movement.type == MovementType.PAGO_DEUDA
        assert movement.source_ref == f"debt_payment:{outcome.payment.id}"
        assert movement.customer_id == CUSTOMER_ID
        assert (await store.get_movement(CLIENT_ID, movement.id)).amount_usd == Decimal("200.00")

    @pytest.mark.asyncio
    async def test_overpayment_clamped(self, debts: DebtLifecycleManager) -> None:
        """500 채무에 200 + 400 → 잔액 0 (음수 아님), pagada, 초과 100 보고"""
        debt = await debts.create_debt(CLIENT_ID, CUSTOMER_ID, Decimal("500.00"))

        await debts.apply_payment(_payment(debt.id, "200.00"))
        outcome = await debts.apply_payment(_payment(debt.id, "400.00"))

        assert outcome.debt.remaining_amount == Decimal("0.00")
        assert outcome.debt.status == DebtStatus.PAGADA
        assert outcome.debt.paid_amount == Decimal("600.00")
        assert outcome.excess_usd == Decimal("100.00")
        assert "Excedente de 100.00 USD" in outcome.payment.notes

        # 결제 금액은 그대로 기록
        _, payments = await debts.get_debt_detail(CLIENT_ID, debt.id)
        assert sorted(p.amount_usd for p in payments) == [Decimal("200.00"), Decimal("400.00")]

    @pytest.mark.asyncio
    async def test_exact_payment_closes_debt(self, debts: DebtLifecycleManager) -> None:
        debt = await debts.create_debt(CLIENT_ID, CUSTOMER_ID, Decimal("50"))

        outcome = await debts.apply_payment(_payment(debt.id, "50"))

        assert outcome.debt.status == DebtStatus.PAGADA
        assert outcome.excess_usd == Decimal("0.00")

    @pytest.mark.asyncio
    async def test_payment_on_closed_debt(self, debts: DebtLifecycleManager) -> None:
        debt = await debts.create_debt(CLIENT_ID, CUSTOMER_ID, Decimal("50"))
        await debts.apply_payment(_payment(debt.id, "50"))

        with pytest.raises(ConflictError, match="pagada"):
            await debts.apply_payment(_payment(debt.id, "1"))

    @pytest.mark.asyncio
    async def test_ars_payment(self, debts: DebtLifecycleManager) -> None:
        debt = await debts.create_debt(CLIENT_ID, CUSTOMER_ID, Decimal("100"))

        outcome = await debts.apply_payment(
            _payment(debt.id, "60000", currency="ARS", exchange_rate=Decimal("1200"))
        )

        assert outcome.payment.currency == Currency.ARS
        assert outcome.payment.amount_usd == Decimal("50.00")
        assert outcome.debt.remaining_amount == Decimal("50.00")

    @pytest.mark.asyncio
    async def test_unknown_debt(self, debts: DebtLifecycleManager) -> None:
        with pytest.raises(NotFoundError):
            await debts.apply_payment(_payment(12345, "10"))

    @pytest.mark.asyncio
    async def test_debt_of_other_tenant(self, debts: DebtLifecycleManager) -> None:
        debt = await debts.create_debt(CLIENT_ID, CUSTOMER_ID, Decimal("100"))

        with pytest.raises(NotFoundError):
            await debts.apply_payment(
                NewDebtPayment(
                    client_id=OTHER_CLIENT_ID, debt_id=debt.id, user_id=1, amount=Decimal("10")
                )
            )

    @pytest.mark.asyncio
    async def test_concurrent_payments_serialized(self, debts: DebtLifecycleManager) -> None:
        """동시 결제도 잔액 계산이 누락되지 않음"""
        debt = await debts.create_debt(CLIENT_ID, CUSTOMER_ID, Decimal("100"))

        outcomes = await asyncio.gather(
            *(debts.apply_payment(_payment(debt.id, "10")) for _ in range(5))
        )

        final, payments = await debts.get_debt_detail(CLIENT_ID, debt.id)
        assert len(outcomes) == 5
        assert len(payments) == 5
        assert final.remaining_amount == Decimal("50.00")
        assert final.paid_amount == Decimal("50.00")
        assert final.version == 6

    @pytest.mark.asyncio
    async def test_rolled_back_payment_never_visible(
        self,
        debts: DebtLifecycleManager,
        store: LedgerStore,
        directory,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """결제 트랜잭션 도중의 조회는 롤백된 잔액을 보지 않음"""
        debt = await debts.create_debt(CLIENT_ID, CUSTOMER_ID, Decimal("500"))
        checking = asyncio.Event()
        release = asyncio.Event()

        async def customer_removed(client_id: int, customer_id: int) -> bool:
            checking.set()
            await release.wait()
            return False

        monkeypatch.setattr(directory, "customer_exists", customer_removed)

        payment_task = asyncio.create_task(debts.apply_payment(_payment(debt.id, "200")))
        await checking.wait()

        reader_task = asyncio.create_task(store.get_debt(CLIENT_ID, debt.id))
        await asyncio.sleep(0.05)
        assert not reader_task.done()

        release.set()
        with pytest.raises(NotFoundError):
            await payment_task

        seen = await reader_task
        assert seen.remaining_amount == Decimal("500.00")
        assert seen.version == 1
        assert await store.query_debt_payments(CLIENT_ID, debt_id=debt.id) == []

    @pytest.mark.asyncio
    async def test_without_movements(
        self,
        db,
        store: LedgerStore,
        rates,
        clock,
    ) -> None:
        manager = DebtLifecycleManager(db, store, rates, clock=clock, record_movements=False)
        debt = await manager.create_debt(CLIENT_ID, CUSTOMER_ID, Decimal("100"))

        outcome = await manager.apply_payment(_payment(debt.id, "10"))

        assert outcome.movement is None
        assert await store.query_movements(CLIENT_ID) == []


class TestStaleVersionRetry:
    """버전 충돌 재시도 테스트"""

    @pytest.mark.asyncio
    async def test_retries_then_conflict(
        self,
        debts: DebtLifecycleManager,
        store: LedgerStore,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """갱신이 계속 실패하면 max_retries 후 ConflictError, 결제는 남지 않음"""
        debt = await debts.create_debt(CLIENT_ID, CUSTOMER_ID, Decimal("100"))
        attempts = 0

        async def always_stale(**kwargs) -> bool:
            nonlocal attempts
            attempts += 1
            return False

        monkeypatch.setattr(store, "update_debt_state", always_stale)

        with pytest.raises(ConflictError):
            await debts.apply_payment(_payment(debt.id, "10"))

        assert attempts == debts.max_retries
        assert await store.query_debt_payments(CLIENT_ID, debt_id=debt.id) == []

    @pytest.mark.asyncio
    async def test_retry_succeeds(
        self,
        debts: DebtLifecycleManager,
        store: LedgerStore,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        debt = await debts.create_debt(CLIENT_ID, CUSTOMER_ID, Decimal("100"))
        original = store.update_debt_state
        calls = 0

        async def stale_once(**kwargs) -> bool:
            nonlocal calls
            calls += 1
            if calls == 1:
                return False
            return await original(**kwargs)

        monkeypatch.setattr(store, "update_debt_state", stale_once)

        outcome = await debts.apply_payment(_payment(debt.id, "10"))

        assert calls == 2
        assert outcome.debt.remaining_amount == Decimal("90.00")


class TestCancelDebt:
    """채무 취소 테스트"""

    @pytest.mark.asyncio
    async def test_cancel(self, debts: DebtLifecycleManager) -> None:
        debt = await debts.create_debt(CLIENT_ID, CUSTOMER_ID, Decimal("100"), notes="fiado")

        cancelled = await debts.cancel_debt(CLIENT_ID, debt.id, reason="acuerdo")

        assert cancelled.status == DebtStatus.CANCELADA
        assert cancelled.notes == "fiado | Cancelada: acuerdo"
        assert cancelled.remaining_amount == Decimal("100.00")

    @pytest.mark.asyncio
    async def test_cancelled_excluded_from_active_sum(
        self,
        debts: DebtLifecycleManager,
        store: LedgerStore,
    ) -> None:
        keep = await debts.create_debt(CLIENT_ID, CUSTOMER_ID, Decimal("100"))
        drop = await debts.create_debt(CLIENT_ID, CUSTOMER_ID, Decimal("40"))
        await debts.cancel_debt(CLIENT_ID, drop.id)

        assert await store.sum_active_debts(CLIENT_ID) == Decimal("100.00")
        active = await debts.list_debts(CLIENT_ID, status="vigente")
        assert [d.id for d in active] == [keep.id]

    @pytest.mark.asyncio
    async def test_cancel_paid_debt(self, debts: DebtLifecycleManager) -> None:
        debt = await debts.create_debt(CLIENT_ID, CUSTOMER_ID, Decimal("10"))
        await debts.apply_payment(_payment(debt.id, "10"))

        with pytest.raises(ConflictError):
            await debts.cancel_debt(CLIENT_ID, debt.id)

    @pytest.mark.asyncio
    async def test_payment_on_cancelled_debt(self, debts: DebtLifecycleManager) -> None:
        debt = await debts.create_debt(CLIENT_ID, CUSTOMER_ID, Decimal("10"))
        await debts.cancel_debt(CLIENT_ID, debt.id)

        with pytest.raises(ConflictError, match="cancelada"):
            await debts.apply_payment(_payment(debt.id, "5"))

    @pytest.mark.asyncio
    async def test_invalid_status_filter(self, debts: DebtLifecycleManager) -> None:
        with pytest.raises(ValidationError):
            await debts.list_debts(CLIENT_ID, status="perdida")
