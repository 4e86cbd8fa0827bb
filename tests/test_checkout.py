"""Tests for the checkout step machine."""

import pytest

from checkout import (
    LOGIN,
    CheckoutSession,
    CheckoutStep,
    discard_session,
    load_session,
    parse_step,
    save_session,
)
from errors import InvalidArgument
from schemas import PaymentMethod, ShippingAddress

ADDRESS = ShippingAddress(address="1 Main St", city="Boston", postalCode="02110", country="USA")


@pytest.fixture
def session():
    return CheckoutSession(session_id="sess-1")


def walk_to_payment(session):
    session.enter(CheckoutStep.SHIPPING, cart_size=1)
    session.save_shipping_address(ADDRESS)
    return session.enter(CheckoutStep.PAYMENT, authenticated=True, cart_size=1)


class TestEnter:
    def test_new_session_starts_at_cart(self, session):
        assert session.step is CheckoutStep.CART
        assert session.shippingAddress is None
        assert session.paymentMethod is PaymentMethod.PAYPAL

    def test_shipping_needs_items_in_cart(self, session):
        result = session.enter(CheckoutStep.SHIPPING, cart_size=0)
        assert result.redirect == "cart"
        assert session.step is CheckoutStep.CART

    @pytest.mark.parametrize("authenticated", [True, False])
    def test_payment_without_address_goes_to_shipping(self, session, authenticated):
        session.enter(CheckoutStep.SHIPPING, cart_size=2)

        result = session.enter(CheckoutStep.PAYMENT, authenticated=authenticated, cart_size=2)

        assert result.redirect == "shipping"
        assert result.next is None
        assert session.step is CheckoutStep.SHIPPING

    def test_payment_without_address_from_cart_goes_to_shipping(self, session):
        result = session.enter(CheckoutStep.PAYMENT, authenticated=True, cart_size=0)
        assert result.redirect == "shipping"
        assert session.step is CheckoutStep.CART

    def test_payment_requires_login_and_keeps_intent(self, session):
        session.enter(CheckoutStep.SHIPPING, cart_size=1)
        session.save_shipping_address(ADDRESS)

        result = session.enter(CheckoutStep.PAYMENT, authenticated=False, cart_size=1)

        assert result.redirect == LOGIN
        assert result.next == "payment"
        assert session.step is CheckoutStep.SHIPPING
        assert session.shippingAddress == ADDRESS

    def test_place_order_requires_login(self, session):
        walk_to_payment(session)
        session.save_payment_method("Stripe")
        session.enter(CheckoutStep.PLACE_ORDER, authenticated=True, cart_size=1)

        result = session.enter(CheckoutStep.PLACE_ORDER, authenticated=False, cart_size=1)

        assert result.redirect == LOGIN
        assert result.next == "placeorder"

    def test_full_walk(self, session):
        assert walk_to_payment(session).redirect is None
        assert session.step is CheckoutStep.PAYMENT

        session.save_payment_method("Stripe")
        result = session.enter(CheckoutStep.PLACE_ORDER, authenticated=True, cart_size=1)

        assert result.redirect is None
        assert session.step is CheckoutStep.PLACE_ORDER
        assert session.paymentMethod is PaymentMethod.STRIPE

    def test_cannot_skip_ahead(self):
        session = CheckoutSession(session_id="s", shippingAddress=ADDRESS)
        result = session.enter(CheckoutStep.PLACE_ORDER, authenticated=True, cart_size=1)
        assert result.redirect == "shipping"
        assert session.step is CheckoutStep.CART

    def test_going_back_keeps_saved_fields(self, session):
        walk_to_payment(session)
        session.save_payment_method("Stripe")

        result = session.enter(CheckoutStep.CART)

        assert result.redirect is None
        assert session.step is CheckoutStep.CART
        assert session.shippingAddress == ADDRESS
        assert session.paymentMethod is PaymentMethod.STRIPE

    def test_completed_is_not_enterable(self, session):
        with pytest.raises(InvalidArgument):
            session.enter(CheckoutStep.COMPLETED, authenticated=True, cart_size=1)


class TestMutations:
    def test_unknown_payment_method_rejected(self, session):
        walk_to_payment(session)
        with pytest.raises(InvalidArgument):
            session.save_payment_method("Bitcoin")
        assert session.paymentMethod is PaymentMethod.PAYPAL

    def test_payment_method_only_at_payment_step(self, session):
        with pytest.raises(InvalidArgument):
            session.save_payment_method("Stripe")

    def test_shipping_only_at_shipping_step(self, session):
        with pytest.raises(InvalidArgument):
            session.save_shipping_address(ADDRESS)

    def test_complete_only_from_place_order(self, session):
        walk_to_payment(session)
        with pytest.raises(InvalidArgument):
            session.complete()

    def test_completed_session_is_closed(self, session):
        walk_to_payment(session)
        session.enter(CheckoutStep.PLACE_ORDER, authenticated=True, cart_size=1)
        session.complete()

        assert session.step is CheckoutStep.COMPLETED
        with pytest.raises(InvalidArgument):
            session.enter(CheckoutStep.CART)


class TestParseStep:
    def test_known(self):
        assert parse_step("placeorder") is CheckoutStep.PLACE_ORDER

    def test_unknown(self):
        with pytest.raises(InvalidArgument):
            parse_step("teleport")


class TestPersistence:
    def test_missing_session_is_fresh(self, db):
        session = load_session(db, "nobody")
        assert session.step is CheckoutStep.CART
        assert db["checkout"].count_documents({}) == 0

    def test_save_and_load(self, db, session):
        walk_to_payment(session)
        save_session(db, session)
        save_session(db, session)

        loaded = load_session(db, "sess-1")

        assert db["checkout"].count_documents({}) == 1
        assert loaded.step is CheckoutStep.PAYMENT
        assert loaded.shippingAddress == ADDRESS

    def test_discard(self, db, session):
        save_session(db, session)
        discard_session(db, "sess-1")
        assert db["checkout"].count_documents({}) == 0
