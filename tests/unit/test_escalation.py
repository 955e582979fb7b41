"""EscalationStateMachine transitions, guards and side effects."""

import threading

import pytest

from models.ticket import InboundMessageRequest, TicketStatus
from services.escalation_service import ESCALATION_NOTICE, RESOLUTION_NOTICE
from services.ticket_service import TicketService
from utils.error_handling import AuthorizationError, InvalidTransitionError, NotFoundError, ValidationError


def _notices(chat_log, ticket_id, text):
    return [m for m in chat_log.read(ticket_id) if m.content == text]


class TestEscalate:
    def test_escalate_open_ticket(self, state_machine, chat_log, make_ticket):
        ticket = make_ticket()

        result = state_machine.escalate(ticket.id, "MERCH-1")

        assert result.changed is True
        assert result.ticket.status == TicketStatus.ESCALATED
        assert result.ticket.is_escalated is True
        assert result.ticket.escalated_at is not None
        last = chat_log.read(ticket.id)[-1]
        assert last.content == ESCALATION_NOTICE
        assert last.is_human is True
        assert last.is_system is True
        assert last.role.value == "assistant"

    def test_escalate_is_idempotent(self, state_machine, chat_log, make_ticket):
        ticket = make_ticket()
        first = state_machine.escalate(ticket.id, "MERCH-1")

        second = state_machine.escalate(ticket.id, "MERCH-1")

        assert second.changed is False
        assert second.system_message is None
        assert second.ticket.escalated_at == first.ticket.escalated_at
        assert second.ticket.status == TicketStatus.ESCALATED
        assert len(_notices(chat_log, ticket.id, ESCALATION_NOTICE)) == 1

    def test_concurrent_escalations_append_one_notice(self, state_machine, chat_log, make_ticket):
        ticket = make_ticket()
        callers = 10
        barrier = threading.Barrier(callers)
        results = []

        def escalate():
            barrier.wait()
            results.append(state_machine.escalate(ticket.id, "MERCH-1"))

        threads = [threading.Thread(target=escalate) for _ in range(callers)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert sum(1 for r in results if r.changed) == 1
        assert len(_notices(chat_log, ticket.id, ESCALATION_NOTICE)) == 1

    def test_escalate_requires_owning_merchant(self, state_machine, make_ticket):
        ticket = make_ticket()
        with pytest.raises(NotFoundError):
            state_machine.escalate(ticket.id, "MERCH-2")

    def test_escalate_closed_ticket_rejected(self, state_machine, chat_log, make_ticket):
        ticket = make_ticket(status=TicketStatus.CLOSED)
        with pytest.raises(InvalidTransitionError) as exc_info:
            state_machine.escalate(ticket.id, "MERCH-1")
        assert exc_info.value.status_code == 409
        assert chat_log.read(ticket.id) == []

    def test_escalate_resolved_ticket(self, state_machine, make_ticket):
        ticket = make_ticket(status=TicketStatus.RESOLVED)
        assert state_machine.escalate(ticket.id, "MERCH-1").changed is True


class TestAdminTransitions:
    def test_mark_human_handled_forces_escalation(self, state_machine, ticket_store, make_ticket):
        ticket = make_ticket()

        updated = state_machine.mark_human_handled(ticket.id, "ADMIN-1")

        assert updated.status == TicketStatus.IN_PROGRESS
        assert updated.is_escalated is True
        assert updated.assigned_agent_id == "ADMIN-1"
        assert ticket_store.get(ticket.id).is_escalated is True

    def test_resolve_escalated_ticket(self, state_machine, chat_log, make_ticket):
        ticket = make_ticket()
        state_machine.escalate(ticket.id, "MERCH-1")

        result = state_machine.resolve(ticket.id, "ADMIN-1")

        assert result.changed is True
        assert result.ticket.status == TicketStatus.RESOLVED
        assert result.ticket.is_escalated is False
        assert len(_notices(chat_log, ticket.id, RESOLUTION_NOTICE)) == 1
        assert chat_log.read(ticket.id)[-1].content == RESOLUTION_NOTICE

    def test_resolve_twice_appends_one_notice(self, state_machine, chat_log, make_ticket):
        ticket = make_ticket(status=TicketStatus.ESCALATED, is_escalated=True)
        state_machine.resolve(ticket.id, "ADMIN-1")

        again = state_machine.resolve(ticket.id, "ADMIN-1")

        assert again.changed is False
        assert len(_notices(chat_log, ticket.id, RESOLUTION_NOTICE)) == 1

    def test_resolve_open_ticket_rejected(self, state_machine, make_ticket):
        ticket = make_ticket()
        with pytest.raises(InvalidTransitionError):
            state_machine.resolve(ticket.id, "ADMIN-1")

    @pytest.mark.parametrize("status", [TicketStatus.RESOLVED, TicketStatus.OPEN])
    def test_resolve_clears_escalation_whatever_the_status(
        self, state_machine, chat_log, make_ticket, status
    ):
        ticket = make_ticket(status=status, is_escalated=True)

        result = state_machine.resolve(ticket.id, "ADMIN-1")

        assert result.changed is True
        assert result.ticket.status == TicketStatus.RESOLVED
        assert result.ticket.is_escalated is False
        assert len(_notices(chat_log, ticket.id, RESOLUTION_NOTICE)) == 1

    @pytest.mark.parametrize("status", [TicketStatus.RESOLVED, TicketStatus.OPEN])
    def test_manual_status_move_hands_ticket_back_to_workflow(
        self, state_machine, ticket_store, conversation, fake_gateway, make_ticket, status
    ):
        ticket = make_ticket()
        state_machine.escalate(ticket.id, "MERCH-1")

        moved = TicketService(ticket_store).update_status(ticket.id, status, "MERCH-1")
        assert moved.is_escalated is False

        result = conversation.handle_merchant_message(
            InboundMessageRequest.model_validate(
                {"ticket_id": ticket.id, "merchant_id": "MERCH-1", "message": "Still broken"}
            )
        )

        assert result.is_escalated is False
        assert result.agent_message == "Here is how to fix it."
        assert len(fake_gateway.calls) == 1

    def test_non_admin_cannot_resolve(self, state_machine, chat_log, ticket_store, make_ticket):
        ticket = make_ticket(status=TicketStatus.ESCALATED, is_escalated=True)

        with pytest.raises(AuthorizationError):
            state_machine.resolve(ticket.id, "MERCH-1")

        assert chat_log.read(ticket.id) == []
        assert ticket_store.get(ticket.id).status == TicketStatus.ESCALATED

    def test_non_admin_cannot_mark_handled(self, state_machine, ticket_store, make_ticket):
        ticket = make_ticket()
        with pytest.raises(AuthorizationError):
            state_machine.mark_human_handled(ticket.id, "nobody")
        assert ticket_store.get(ticket.id).is_escalated is False

    def test_missing_admin_id_is_validation_error(self, state_machine, make_ticket):
        ticket = make_ticket()
        with pytest.raises(ValidationError):
            state_machine.resolve(ticket.id, "")


class TestReactivation:
    def test_resolved_ticket_reactivated(self, state_machine, make_ticket):
        ticket = make_ticket(status=TicketStatus.RESOLVED)
        assert state_machine.reactivate_on_merchant_message(ticket).status == TicketStatus.IN_PROGRESS

    @pytest.mark.parametrize("status", [TicketStatus.OPEN, TicketStatus.ESCALATED, TicketStatus.CLOSED])
    def test_other_states_untouched(self, state_machine, make_ticket, status):
        ticket = make_ticket(status=status)
        assert state_machine.reactivate_on_merchant_message(ticket).status == status
