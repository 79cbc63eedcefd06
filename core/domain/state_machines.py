"""
State Machines

고객 채무 상태 전이 규칙.
vigente → pagada (누적 결제가 원금 이상), vigente → cancelada (관리자 취소).
"""

import logging

from core.ledger.types import DebtStatus

logger = logging.getLogger(__name__)


class StateMachineError(Exception):
    """허용되지 않은 상태 전이"""


class DebtStateMachine:
    """고객 채무 상태 머신

    Args:
        initial_state: 현재 채무 상태 (DebtStatus 또는 문자열 값)
    """

    TRANSITIONS: dict[DebtStatus, frozenset[DebtStatus]] = {
        DebtStatus.VIGENTE: frozenset({DebtStatus.PAGADA, DebtStatus.CANCELADA}),
        DebtStatus.PAGADA: frozenset(),
        DebtStatus.CANCELADA: frozenset(),
    }

    def __init__(self, initial_state: DebtStatus | str = DebtStatus.VIGENTE):
        self._state = DebtStatus(initial_state)
        self._history: list[tuple[DebtStatus, DebtStatus]] = []

    @property
    def state(self) -> DebtStatus:
        return self._state

    @property
    def is_terminal(self) -> bool:
        """더 이상 전이할 수 없는 상태인지"""
        return not self.TRANSITIONS[self._state]

    @property
    def history(self) -> list[tuple[DebtStatus, DebtStatus]]:
        """이 머신에서 일어난 전이 (복사본)"""
        return list(self._history)

    def can_transition(self, to_state: DebtStatus | str) -> bool:
        return DebtStatus(to_state) in self.TRANSITIONS[self._state]

    def transition(self, to_state: DebtStatus | str) -> DebtStatus:
        """상태 전이

        Raises:
            StateMachineError: 허용되지 않은 전이
        """
        target = DebtStatus(to_state)
        if not self.can_transition(target):
            allowed = sorted(s.value for s in self.TRANSITIONS[self._state])
            raise StateMachineError(
                f"채무 상태 {self._state.value} → {target.value} 전이 불가 (허용: {allowed})"
            )

        self._history.append((self._state, target))
        logger.debug(f"채무 상태 전이: {self._state.value} → {target.value}")
        self._state = target
        return target
