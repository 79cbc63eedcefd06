"""
State Machine 테스트

채무 상태 전이 규칙
"""

import pytest

from core.domain.state_machines import DebtStateMachine, StateMachineError
from core.ledger.types import DebtStatus


class TestDebtStateMachine:
    """DebtStateMachine 테스트"""

    def test_initial_state(self) -> None:
        machine = DebtStateMachine()

        assert machine.state == "vigente"
        assert not machine.is_terminal

    @pytest.mark.parametrize("target", [DebtStatus.PAGADA, DebtStatus.CANCELADA])
    def test_vigente_transitions(self, target: DebtStatus) -> None:
        machine = DebtStateMachine(DebtStatus.VIGENTE)

        assert machine.transition(target) == target.value
        assert machine.is_terminal
        assert machine.history == [("vigente", target.value)]

    @pytest.mark.parametrize("state", [DebtStatus.PAGADA, DebtStatus.CANCELADA])
    def test_terminal_states_cannot_move(self, state: DebtStatus) -> None:
        """종료 상태에서는 어떤 전이도 불가"""
        machine = DebtStateMachine(state)

        assert machine.is_terminal
        for target in DebtStatus:
            assert not machine.can_transition(target)

        with pytest.raises(StateMachineError):
            machine.transition(DebtStatus.VIGENTE)

    def test_string_state(self) -> None:
        machine = DebtStateMachine("vigente")

        assert machine.can_transition("pagada")
        assert not machine.can_transition("vigente")

    def test_history_is_copy(self) -> None:
        machine = DebtStateMachine()
        machine.transition(DebtStatus.PAGADA)

        history = machine.history
        history.clear()

        assert machine.history == [("vigente", "pagada")]
