import pytest

from maintdesk.tickets.state import TicketStateMachine, TicketStatus


def test_ticket_state_machine_allows_expected_transitions():
    assert TicketStateMachine.initial_state() is TicketStatus.OPEN
    assert TicketStateMachine.can_transition(TicketStatus.OPEN, TicketStatus.ASSIGNED)
    assert TicketStateMachine.can_transition(TicketStatus.ASSIGNED, TicketStatus.ASSIGNED)
    assert TicketStateMachine.can_transition(TicketStatus.ASSIGNED, TicketStatus.IN_PROGRESS)
    assert TicketStateMachine.can_transition(TicketStatus.IN_PROGRESS, TicketStatus.COMPLETED)


def test_ticket_state_machine_blocks_invalid_transitions():
    assert not TicketStateMachine.can_transition(TicketStatus.OPEN, TicketStatus.IN_PROGRESS)
    assert not TicketStateMachine.can_transition(TicketStatus.IN_PROGRESS, TicketStatus.ASSIGNED)
    assert not TicketStateMachine.can_transition(TicketStatus.COMPLETED, TicketStatus.OPEN)
    with pytest.raises(ValueError):
        TicketStateMachine.assert_transition(TicketStatus.COMPLETED, TicketStatus.IN_PROGRESS)


def test_sources_for_lists_predecessors_in_lifecycle_order():
    assert TicketStateMachine.sources_for(TicketStatus.ASSIGNED) == (TicketStatus.OPEN, TicketStatus.ASSIGNED)
    assert TicketStateMachine.sources_for(TicketStatus.OPEN) == ()
