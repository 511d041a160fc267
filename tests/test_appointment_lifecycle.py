from __future__ import annotations

from datetime import datetime
from zoneinfo import ZoneInfo

import pytest

from app.application.exceptions import (
    DailyCapacityError,
    DayClosedError,
    DuplicateSlotError,
    MisalignedSlotError,
    NotFoundError,
    OutOfWindowError,
    SlotTakenError,
    StateTransitionError,
    ValidationError,
)
from app.application.use_cases.appointment_lifecycle import AppointmentLifecycleUseCase
from app.application.use_cases.checkout import CheckoutRequest
from app.application.use_cases.notify_participants import NotifyParticipantsUseCase
from app.application.use_cases.validate_bookings import BookingValidator, RequestedBooking
from app.domain.entities.order import AppointmentStatus, OrderStatus

UTC = ZoneInfo("UTC")
SELLER_ID = 7
BUYER_ID = 42


@pytest.fixture
def order(checkout):
    result = checkout.execute(
        CheckoutRequest(
            items=[RequestedBooking("svc-1", 1, "2025-01-06T10:00:00Z")],
            customer_email="ana@example.com",
        ),
        buyer_id=BUYER_ID,
    )
    return result.orders[0]


def statuses(order) -> list[AppointmentStatus]:
    return [b.appointment_status for b in order.bookings]


def test_seller_confirms(lifecycle, order):
    result = lifecycle.confirm(order.id, seller_id=SELLER_ID)

    assert result.ok
    assert result.order.status == OrderStatus.scheduled
    assert statuses(result.order) == [AppointmentStatus.confirmed]


def test_confirming_twice_is_rejected(lifecycle, order):
    lifecycle.confirm(order.id, seller_id=SELLER_ID)

    result = lifecycle.confirm(order.id, seller_id=SELLER_ID)

    assert isinstance(result.error, StateTransitionError)
    assert "confirmed" in result.error.message


def test_other_seller_cannot_see_order(lifecycle, order):
    result = lifecycle.confirm(order.id, seller_id=99)

    assert isinstance(result.error, NotFoundError)
    assert result.error.status_code == 404


def test_unknown_order(lifecycle):
    assert isinstance(lifecycle.confirm("missing", seller_id=SELLER_ID).error, NotFoundError)


def test_goods_order_has_nothing_to_confirm(lifecycle, checkout):
    goods = checkout.execute(CheckoutRequest(items=[RequestedBooking("goods-1", 1)]), buyer_id=BUYER_ID).orders[0]

    result = lifecycle.confirm(goods.id, seller_id=SELLER_ID)

    assert isinstance(result.error, ValidationError)
    assert result.error.status_code == 400


def test_reject_without_proposals(lifecycle, order):
    result = lifecycle.reject_or_propose(order.id, seller_id=SELLER_ID, proposals=[])

    assert result.order.status == OrderStatus.pending
    assert statuses(result.order) == [AppointmentStatus.rejected]

    accepted = lifecycle.accept_alternate(order.id, buyer_id=BUYER_ID, date="2025-01-07T10:00:00Z")
    assert isinstance(accepted.error, StateTransitionError)


def test_rejected_booking_releases_slot(lifecycle, order, checkout):
    lifecycle.reject_or_propose(order.id, seller_id=SELLER_ID, proposals=[])

    again = checkout.execute(
        CheckoutRequest(items=[RequestedBooking("svc-1", 1, "2025-01-06T10:00:00Z")]), buyer_id=43
    )

    assert again.ok


def test_propose_then_buyer_accepts(lifecycle, order, sender):
    proposed = lifecycle.reject_or_propose(
        order.id,
        seller_id=SELLER_ID,
        proposals=["2025-01-07T14:00:00Z", "2025-01-08T09:00:00Z"],
    )

    booking = proposed.order.bookings[0]
    assert booking.appointment_status == AppointmentStatus.proposed
    assert booking.appointment_alternates == (
        datetime(2025, 1, 7, 14, 0, tzinfo=UTC),
        datetime(2025, 1, 8, 9, 0, tzinfo=UTC),
    )
    assert proposed.order.status == OrderStatus.pending

    accepted = lifecycle.accept_alternate(order.id, buyer_id=BUYER_ID, date="2025-01-08T09:00:00Z")

    booking = accepted.order.bookings[0]
    assert accepted.order.status == OrderStatus.scheduled
    assert booking.appointment_status == AppointmentStatus.scheduled
    assert booking.appointment_at == datetime(2025, 1, 8, 9, 0, tzinfo=UTC)
    assert booking.appointment_alternates == ()
    assert [subject for _, subject in sender.sent][-2:] == [
        "Marketplace: New times proposed for your appointment",
        "Marketplace: Appointment time accepted",
    ]


def test_buyer_must_pick_a_proposed_time(lifecycle, order):
    lifecycle.reject_or_propose(order.id, seller_id=SELLER_ID, proposals=["2025-01-07T14:00:00Z"])

    result = lifecycle.accept_alternate(order.id, buyer_id=BUYER_ID, date="2025-01-07T15:00:00Z")

    assert isinstance(result.error, ValidationError)


def test_accept_requires_date(lifecycle, order):
    assert isinstance(lifecycle.accept_alternate(order.id, buyer_id=BUYER_ID, date=None).error, ValidationError)


def test_accepting_a_slot_taken_meanwhile(lifecycle, order, checkout):
    lifecycle.reject_or_propose(order.id, seller_id=SELLER_ID, proposals=["2025-01-07T14:00:00Z"])
    assert checkout.execute(
        CheckoutRequest(items=[RequestedBooking("svc-1", 1, "2025-01-07T14:00:00Z")]), buyer_id=43
    ).ok

    result = lifecycle.accept_alternate(order.id, buyer_id=BUYER_ID, date="2025-01-07T14:00:00Z")

    assert isinstance(result.error, SlotTakenError)


def test_invalid_proposal(lifecycle, order):
    result = lifecycle.reject_or_propose(order.id, seller_id=SELLER_ID, proposals=["soon"])

    assert isinstance(result.error, ValidationError)


def test_complete_and_pay(lifecycle, order):
    lifecycle.confirm(order.id, seller_id=SELLER_ID)

    completed = lifecycle.complete_service(order.id, seller_id=SELLER_ID)
    assert completed.order.status == OrderStatus.completed
    assert statuses(completed.order) == [AppointmentStatus.completed]

    paid = lifecycle.pay(order.id, buyer_id=BUYER_ID)
    assert paid.order.status == OrderStatus.paid


def test_cannot_pay_before_completion(lifecycle, order):
    result = lifecycle.pay(order.id, buyer_id=BUYER_ID)

    assert isinstance(result.error, StateTransitionError)


def test_cannot_complete_unconfirmed_service(lifecycle, order):
    result = lifecycle.complete_service(order.id, seller_id=SELLER_ID)

    assert isinstance(result.error, StateTransitionError)


@pytest.mark.parametrize("finish", ["complete", "reject"])
def test_terminal_states_accept_no_transition(lifecycle, order, finish):
    if finish == "complete":
        lifecycle.confirm(order.id, seller_id=SELLER_ID)
        lifecycle.complete_service(order.id, seller_id=SELLER_ID)
    else:
        lifecycle.reject_or_propose(order.id, seller_id=SELLER_ID, proposals=[])

    attempts = [
        lifecycle.confirm(order.id, seller_id=SELLER_ID),
        lifecycle.reject_or_propose(order.id, seller_id=SELLER_ID, proposals=["2025-01-07T14:00:00Z"]),
        lifecycle.reject_or_propose(order.id, seller_id=SELLER_ID, proposals=[]),
        lifecycle.accept_alternate(order.id, buyer_id=BUYER_ID, date="2025-01-07T14:00:00Z"),
        lifecycle.complete_service(order.id, seller_id=SELLER_ID),
    ]

    assert all(isinstance(a.error, StateTransitionError) for a in attempts)


def test_notifier_failure_does_not_break_transition(store, order, tz):
    class BrokenSender:
        def send_email(self, to, subject, html):
            raise RuntimeError("smtp down")

    uc = AppointmentLifecycleUseCase(
        orders=store,
        bookings=store,
        products=store,
        validator=BookingValidator(bookings=store, timezone=tz),
        timezone=tz,
        notifier=NotifyParticipantsUseCase(BrokenSender()),
    )

    assert uc.confirm(order.id, seller_id=SELLER_ID).ok


@pytest.fixture
def two_service_order(store, checkout, make_service):
    store.save_product(make_service("svc-4", title="Beard trim"))
    result = checkout.execute(
        CheckoutRequest(
            items=[
                RequestedBooking("svc-1", 1, "2025-01-06T10:00:00Z"),
                RequestedBooking("svc-4", 1, "2025-01-06T10:00:00Z"),
            ]
        ),
        buyer_id=BUYER_ID,
    )
    assert len(result.orders) == 1
    return result.orders[0]


def test_confirm_and_complete_every_booking(lifecycle, two_service_order):
    confirmed = lifecycle.confirm(two_service_order.id, seller_id=SELLER_ID)
    assert statuses(confirmed.order) == [AppointmentStatus.confirmed, AppointmentStatus.confirmed]
    assert confirmed.order.status == OrderStatus.scheduled

    completed = lifecycle.complete_service(two_service_order.id, seller_id=SELLER_ID)
    assert statuses(completed.order) == [AppointmentStatus.completed, AppointmentStatus.completed]
    assert completed.order.status == OrderStatus.completed


def test_accept_moves_every_booking(lifecycle, two_service_order):
    lifecycle.reject_or_propose(two_service_order.id, seller_id=SELLER_ID, proposals=["2025-01-07T14:00:00Z"])

    result = lifecycle.accept_alternate(two_service_order.id, buyer_id=BUYER_ID, date="2025-01-07T14:00:00Z")

    assert result.ok
    assert result.order.status == OrderStatus.scheduled
    assert [b.appointment_at for b in result.order.bookings] == [datetime(2025, 1, 7, 14, 0, tzinfo=UTC)] * 2


def test_accept_rejected_when_one_slot_was_taken(lifecycle, checkout, store, two_service_order):
    lifecycle.reject_or_propose(two_service_order.id, seller_id=SELLER_ID, proposals=["2025-01-07T14:00:00Z"])
    assert checkout.execute(
        CheckoutRequest(items=[RequestedBooking("svc-4", 1, "2025-01-07T14:00:00Z")]), buyer_id=43
    ).ok

    result = lifecycle.accept_alternate(two_service_order.id, buyer_id=BUYER_ID, date="2025-01-07T14:00:00Z")

    assert isinstance(result.error, SlotTakenError)
    order = store.get_order(two_service_order.id)
    assert statuses(order) == [AppointmentStatus.proposed, AppointmentStatus.proposed]
    assert [b.appointment_at for b in order.bookings] == [datetime(2025, 1, 6, 10, 0, tzinfo=UTC)] * 2


def test_conflict_during_accept_puts_moved_bookings_back(lifecycle, checkout, store, two_service_order, monkeypatch):
    lifecycle.reject_or_propose(two_service_order.id, seller_id=SELLER_ID, proposals=["2025-01-07T14:00:00Z"])
    assert checkout.execute(
        CheckoutRequest(items=[RequestedBooking("svc-4", 1, "2025-01-07T14:00:00Z")]), buyer_id=43
    ).ok
    # Only the store's uniqueness index stands in the way now.
    monkeypatch.setattr(lifecycle, "_check_move", lambda bookings, slot: None)

    result = lifecycle.accept_alternate(two_service_order.id, buyer_id=BUYER_ID, date="2025-01-07T14:00:00Z")

    assert isinstance(result.error, SlotTakenError)
    order = store.get_order(two_service_order.id)
    assert order.status == OrderStatus.pending
    assert statuses(order) == [AppointmentStatus.proposed, AppointmentStatus.proposed]
    assert [b.appointment_at for b in order.bookings] == [datetime(2025, 1, 6, 10, 0, tzinfo=UTC)] * 2
    assert all(b.appointment_alternates == (datetime(2025, 1, 7, 14, 0, tzinfo=UTC),) for b in order.bookings)
    assert checkout.execute(
        CheckoutRequest(items=[RequestedBooking("svc-1", 1, "2025-01-07T14:00:00Z")]), buyer_id=44
    ).ok


def test_one_time_cannot_fit_two_bookings_of_one_service(lifecycle, checkout, store):
    order = checkout.execute(
        CheckoutRequest(
            items=[
                RequestedBooking("svc-1", 1, "2025-01-06T10:00:00Z"),
                RequestedBooking("svc-1", 1, "2025-01-06T11:00:00Z"),
            ]
        ),
        buyer_id=BUYER_ID,
    ).orders[0]

    result = lifecycle.reject_or_propose(order.id, seller_id=SELLER_ID, proposals=["2025-01-07T14:00:00Z"])

    assert isinstance(result.error, DuplicateSlotError)
    assert statuses(store.get_order(order.id)) == [AppointmentStatus.requested, AppointmentStatus.requested]


@pytest.mark.parametrize(
    "proposal, error",
    [
        ("2025-01-12T10:00:00Z", DayClosedError),
        ("2025-01-07T11:17:00Z", MisalignedSlotError),
        ("2025-01-07T18:00:00Z", OutOfWindowError),
    ],
)
def test_proposals_follow_opening_hours(lifecycle, store, order, proposal, error):
    result = lifecycle.reject_or_propose(order.id, seller_id=SELLER_ID, proposals=["2025-01-07T14:00:00Z", proposal])

    assert isinstance(result.error, error)
    assert statuses(store.get_order(order.id)) == [AppointmentStatus.requested]


@pytest.fixture
def capped(store, checkout, make_service):
    store.save_product(make_service("svc-cap", title="Consultation", daily_capacity=1))
    return checkout


def test_proposal_on_full_day(lifecycle, capped):
    mine = capped.execute(
        CheckoutRequest(items=[RequestedBooking("svc-cap", 1, "2025-01-06T10:00:00Z")]), buyer_id=BUYER_ID
    ).orders[0]
    assert capped.execute(
        CheckoutRequest(items=[RequestedBooking("svc-cap", 1, "2025-01-07T10:00:00Z")]), buyer_id=43
    ).ok

    result = lifecycle.reject_or_propose(mine.id, seller_id=SELLER_ID, proposals=["2025-01-07T11:00:00Z"])

    assert isinstance(result.error, DailyCapacityError)


def test_accept_on_day_filled_meanwhile(lifecycle, capped, store, tz):
    mine = capped.execute(
        CheckoutRequest(items=[RequestedBooking("svc-cap", 1, "2025-01-06T10:00:00Z")]), buyer_id=BUYER_ID
    ).orders[0]
    assert lifecycle.reject_or_propose(mine.id, seller_id=SELLER_ID, proposals=["2025-01-07T11:00:00Z"]).ok
    assert capped.execute(
        CheckoutRequest(items=[RequestedBooking("svc-cap", 1, "2025-01-07T10:00:00Z")]), buyer_id=43
    ).ok

    result = lifecycle.accept_alternate(mine.id, buyer_id=BUYER_ID, date="2025-01-07T11:00:00Z")

    assert isinstance(result.error, DailyCapacityError)
    tuesday = datetime(2025, 1, 7, tzinfo=tz)
    live = [b for b in store.find_bookings("svc-cap", tuesday, tuesday.replace(day=8)) if b.holds_slot]
    assert len(live) == 1


def test_moving_within_the_same_full_day(lifecycle, capped):
    mine = capped.execute(
        CheckoutRequest(items=[RequestedBooking("svc-cap", 1, "2025-01-06T10:00:00Z")]), buyer_id=BUYER_ID
    ).orders[0]

    assert lifecycle.reject_or_propose(mine.id, seller_id=SELLER_ID, proposals=["2025-01-06T15:00:00Z"]).ok
    result = lifecycle.accept_alternate(mine.id, buyer_id=BUYER_ID, date="2025-01-06T15:00:00Z")

    assert result.ok
    assert result.order.bookings[0].appointment_at == datetime(2025, 1, 6, 15, 0, tzinfo=UTC)
