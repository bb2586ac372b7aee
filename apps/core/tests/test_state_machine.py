import pytest

from apps.core.exceptions import InvalidTransition
from apps.core.utils.state_machine import TransitionTable
from apps.disputes.models import DISPUTE_TRANSITIONS, DisputeStatus
from apps.offers.models import OFFER_TRANSITIONS, OfferStatus
from apps.orders.models import ORDER_TRANSITIONS, OrderStatus


class TestTransitionTable:
    def test_check_allows_declared_edge(self):
        table = TransitionTable("lamp", {"off": {"on"}, "on": {"off"}})

        table.check("off", "on")

        assert table.can("on", "off")

    def test_check_rejects_undeclared_edge(self):
        table = TransitionTable("lamp", {"off": {"on"}, "on": set()})

        with pytest.raises(InvalidTransition) as exc_info:
            table.check("on", "off")

        assert exc_info.value.context["current_status"] == "on"
        assert exc_info.value.context["requested_status"] == "off"

    def test_unknown_status_is_an_error(self):
        table = TransitionTable("lamp", {"off": {"on"}, "on": set()})

        with pytest.raises(KeyError):
            table.allowed_from("broken")


@pytest.mark.parametrize(
    "table, choices",
    [
        (OFFER_TRANSITIONS, OfferStatus),
        (ORDER_TRANSITIONS, OrderStatus),
        (DISPUTE_TRANSITIONS, DisputeStatus),
    ],
)
def test_tables_cover_every_status(table, choices):
    for status in choices.values:
        assert status in table
        for target in table.allowed_from(status):
            assert target in choices.values


class TestTerminalStatuses:
    def test_offer_terminals(self):
        terminal = {s for s in OfferStatus.values if OFFER_TRANSITIONS.is_terminal(s)}
        assert terminal == {"declined", "withdrawn", "expired", "paid"}

    def test_order_terminals(self):
        terminal = {s for s in OrderStatus.values if ORDER_TRANSITIONS.is_terminal(s)}
        assert terminal == {"completed", "cancelled"}

    def test_dispute_only_closes_after_resolution(self):
        assert DISPUTE_TRANSITIONS.is_terminal(DisputeStatus.CLOSED)
        assert not DISPUTE_TRANSITIONS.can(DisputeStatus.OPEN, DisputeStatus.CLOSED)
        assert DISPUTE_TRANSITIONS.can(
            DisputeStatus.RESOLVED_MUTUAL, DisputeStatus.CLOSED
        )

    def test_accepted_offer_can_only_be_paid(self):
        assert OFFER_TRANSITIONS.allowed_from(OfferStatus.ACCEPTED) == {"paid"}
