"""
Tests for FieldBook: pure booking rules (no database)
"""

from dataclasses import dataclass
from datetime import date, time
from decimal import Decimal

import pytest

from fieldbook.core.permissions import (
    Permission,
    UserRole,
    actor_is_permitted,
    has_permission,
    is_permitted,
    role_level,
)
from fieldbook.domain import booking_state
from fieldbook.domain.booking_state import (
    assert_booking_transition,
    can_transition,
    history_action,
    is_terminal,
)
from fieldbook.domain.conflict import (
    duration_hours,
    find_conflicts,
    intervals_overlap,
    validate_interval,
)
from fieldbook.domain.errors import (
    BookingValidationError,
    InvalidTransition,
    PaymentNotCompleted,
)
from fieldbook.domain.payment_gate import assert_payment_completed, can_confirm
from fieldbook.domain.payment_state import (
    assert_payment_transition,
    booking_payment_status_after,
    initial_payment_status,
)
from fieldbook.domain.transition import SYSTEM_ACTOR, Actor, Transition


DAY = date(2025, 6, 15)


@dataclass
class FakeBooking:
    field_id: int
    date: date
    start_time: time
    end_time: time
    status: str = "pending"
    payment_status: str = "unpaid"


def _slot(start, end, status="pending", field_id=1, day=DAY):
    return FakeBooking(field_id, day, time.fromisoformat(start), time.fromisoformat(end), status)


class TestIntervals:
    def test_overlapping_intervals(self):
        assert intervals_overlap(time(14), time(16), time(15), time(17))

    def test_contained_interval_overlaps(self):
        assert intervals_overlap(time(14), time(18), time(15), time(16))

    def test_touching_intervals_do_not_overlap(self):
        assert not intervals_overlap(time(14), time(16), time(16), time(18))
        assert not intervals_overlap(time(16), time(18), time(14), time(16))

    def test_disjoint_intervals(self):
        assert not intervals_overlap(time(8), time(9), time(10), time(11))

    def test_duration_hours(self):
        assert duration_hours(time(14), time(16)) == Decimal("2.00")
        assert duration_hours(time(14), time(15, 30)) == Decimal("1.50")


class TestValidateInterval:
    def test_valid_interval(self):
        validate_interval(time(14), time(16), time(8), time(23))

    def test_end_before_start_rejected(self):
        with pytest.raises(BookingValidationError):
            validate_interval(time(16), time(14))

    def test_empty_interval_rejected(self):
        with pytest.raises(BookingValidationError):
            validate_interval(time(14), time(14))

    def test_before_opening_rejected(self):
        with pytest.raises(BookingValidationError) as exc:
            validate_interval(time(7), time(9), time(8), time(23))
        assert exc.value.code == "VALIDATION_ERROR"

    def test_after_closing_rejected(self):
        with pytest.raises(BookingValidationError):
            validate_interval(time(22), time(23, 30), time(8), time(23))

    def test_exact_operating_hours_allowed(self):
        validate_interval(time(8), time(23), time(8), time(23))


class TestFindConflicts:
    def test_live_overlap_is_conflict(self):
        existing = [_slot("14:00", "16:00", "confirmed")]
        assert find_conflicts(existing, 1, DAY, time(15), time(17)) == existing

    def test_pending_bookings_hold_slot(self):
        existing = [_slot("14:00", "16:00", "pending")]
        assert find_conflicts(existing, 1, DAY, time(15), time(17))

    @pytest.mark.parametrize("status", ["cancelled", "rejected", "completed"])
    def test_closed_bookings_free_slot(self, status):
        existing = [_slot("14:00", "16:00", status)]
        assert find_conflicts(existing, 1, DAY, time(15), time(17)) == []

    def test_other_field_or_date_ignored(self):
        existing = [
            _slot("14:00", "16:00", field_id=2),
            _slot("14:00", "16:00", day=date(2025, 6, 16)),
        ]
        assert find_conflicts(existing, 1, DAY, time(14), time(16)) == []

    def test_touching_booking_not_conflict(self):
        existing = [_slot("14:00", "16:00", "confirmed")]
        assert find_conflicts(existing, 1, DAY, time(16), time(18)) == []


class TestBookingStateTable:
    @pytest.mark.parametrize(
        "current,target",
        [
            ("pending", "confirmed"),
            ("pending", "rejected"),
            ("pending", "cancelled"),
            ("confirmed", "completed"),
            ("confirmed", "cancelled"),
        ],
    )
    def test_allowed_transitions(self, current, target):
        assert can_transition(current, target)
        assert_booking_transition(current, target)

    @pytest.mark.parametrize(
        "current,target",
        [
            ("pending", "completed"),
            ("confirmed", "rejected"),
            ("confirmed", "pending"),
            ("completed", "cancelled"),
            ("cancelled", "confirmed"),
            ("rejected", "pending"),
        ],
    )
    def test_forbidden_transitions(self, current, target):
        assert not can_transition(current, target)
        with pytest.raises(InvalidTransition):
            assert_booking_transition(current, target)

    def test_terminal_states(self):
        assert booking_state.TERMINAL_STATUSES == {"completed", "cancelled", "rejected"}
        assert is_terminal("cancelled")
        assert not is_terminal("confirmed")

    def test_history_action_labels(self):
        assert history_action(None, "pending") == "BOOKING_CREATED"
        assert history_action("pending", "confirmed") == "STATUS_CHANGE_PENDING_TO_CONFIRMED"

    def test_transition_targets(self):
        assert Transition.CONFIRM.target_status == "confirmed"
        assert Transition.CANCEL.requires_reason
        assert Transition.REJECT.requires_reason
        assert not Transition.COMPLETE.requires_reason


class TestPaymentGate:
    def test_paid_booking_can_be_confirmed(self):
        booking = FakeBooking(1, DAY, time(14), time(16), payment_status="paid")
        assert can_confirm(booking)
        assert_payment_completed(booking)

    @pytest.mark.parametrize("payment_status", ["unpaid", "pending", "refunded"])
    def test_unpaid_booking_refused(self, payment_status):
        booking = FakeBooking(1, DAY, time(14), time(16), payment_status=payment_status)
        with pytest.raises(PaymentNotCompleted) as exc:
            assert_payment_completed(booking)
        assert exc.value.context["current_payment_status"] == payment_status
        assert exc.value.context["required_payment_status"] == "paid"


class TestPaymentState:
    def test_cash_starts_paid(self):
        assert initial_payment_status("cash") == "paid"
        assert initial_payment_status("transfer") == "pending"

    def test_refund_only_from_paid(self):
        assert_payment_transition("paid", "refunded")
        with pytest.raises(InvalidTransition):
            assert_payment_transition("pending", "refunded")

    def test_failed_is_final(self):
        with pytest.raises(InvalidTransition):
            assert_payment_transition("failed", "paid")

    def test_booking_status_follows_payments(self):
        assert booking_payment_status_after("unpaid", "pending") == "pending"
        assert booking_payment_status_after("pending", "paid") == "paid"
        assert booking_payment_status_after("pending", "failed") == "unpaid"
        assert booking_payment_status_after("pending", "failed", other_pending=True) == "pending"
        assert booking_payment_status_after("paid", "refunded") == "refunded"


class TestPermissions:
    def test_role_levels_ordered(self):
        levels = [role_level(r) for r in UserRole]
        assert levels == sorted(levels)
        assert role_level("nobody") == 0

    def test_customer_can_create_but_not_confirm(self):
        assert is_permitted("customer", Transition.CREATE)
        assert not is_permitted("customer", Transition.CONFIRM)

    def test_guest_cannot_create(self):
        assert not is_permitted("guest", Transition.CREATE)

    def test_owner_may_cancel(self):
        assert not is_permitted("customer", Transition.CANCEL)
        assert is_permitted("customer", Transition.CANCEL, is_owner=True)

    def test_owner_may_not_confirm(self):
        assert not is_permitted("customer", Transition.CONFIRM, is_owner=True)

    @pytest.mark.parametrize("transition", [Transition.CONFIRM, Transition.REJECT, Transition.COMPLETE])
    def test_operator_and_above_manage_lifecycle(self, transition):
        for role in ("operator", "manager", "supervisor"):
            assert is_permitted(role, transition)
        assert not is_permitted("cashier", transition)

    def test_system_actor_only_completes(self):
        assert actor_is_permitted(SYSTEM_ACTOR, Transition.COMPLETE)
        for transition in (Transition.CREATE, Transition.CONFIRM, Transition.CANCEL, Transition.REJECT):
            assert not actor_is_permitted(SYSTEM_ACTOR, transition)

    def test_user_actor_uses_role(self):
        assert actor_is_permitted(Actor(id=1, role="operator"), Transition.CONFIRM)
        assert SYSTEM_ACTOR.actor_type == "system"
        assert Actor(id=1, role="operator").actor_type == "user"

    def test_payment_permissions(self):
        assert has_permission("cashier", Permission.RECORD_PAYMENT)
        assert not has_permission("customer", Permission.RECORD_PAYMENT)
        assert not has_permission("operator", Permission.REFUND_PAYMENT)
        assert has_permission("manager", Permission.REFUND_PAYMENT)
        assert has_permission("manager", Permission.MANAGE_AUTO_COMPLETION)
