"""
Checkout flow.

A checkout session walks ``cart -> shipping -> payment -> placeorder`` and
ends in ``completed`` once the order is accepted. Every request to show a
step goes through :meth:`CheckoutSession.enter`, which checks that step's
preconditions in order and either moves the session there or tells the
client where to go instead. Failed checks never clear saved fields, so a
shopper sent back to shipping keeps the payment method already chosen.
"""

import logging
from enum import Enum
from typing import Optional

from pydantic import BaseModel
from pymongo.database import Database

from database import now
from errors import InvalidArgument
from schemas import PaymentMethod, ShippingAddress

logger = logging.getLogger(__name__)

LOGIN = "login"


class CheckoutStep(str, Enum):
    CART = "cart"
    SHIPPING = "shipping"
    PAYMENT = "payment"
    PLACE_ORDER = "placeorder"
    COMPLETED = "completed"


# Direct moves. Going back never undoes saved fields; going forward is one
# step at a time.
TRANSITIONS = {
    CheckoutStep.CART: {CheckoutStep.SHIPPING},
    CheckoutStep.SHIPPING: {CheckoutStep.CART, CheckoutStep.PAYMENT},
    CheckoutStep.PAYMENT: {CheckoutStep.CART, CheckoutStep.SHIPPING, CheckoutStep.PLACE_ORDER},
    CheckoutStep.PLACE_ORDER: {
        CheckoutStep.CART,
        CheckoutStep.SHIPPING,
        CheckoutStep.PAYMENT,
        CheckoutStep.COMPLETED,
    },
    CheckoutStep.COMPLETED: set(),
}

ORDER = list(CheckoutStep)


class Transition(BaseModel):
    """Outcome of asking for a step.

    ``redirect`` is None when the session moved to the requested step.
    Otherwise it names where the client should go; for ``login`` the
    requested step is kept in ``next``.
    """
    step: CheckoutStep
    redirect: Optional[str] = None
    next: Optional[str] = None


def _needs_cart(session, authenticated, cart_size):
    if cart_size < 1:
        return CheckoutStep.CART.value
    return None


def _needs_shipping(session, authenticated, cart_size):
    if session.shippingAddress is None:
        return CheckoutStep.SHIPPING.value
    return None


def _needs_login(session, authenticated, cart_size):
    if not authenticated:
        return LOGIN
    return None


# Checked in order, first failure wins.
GUARDS = {
    CheckoutStep.CART: [],
    CheckoutStep.SHIPPING: [_needs_cart],
    CheckoutStep.PAYMENT: [_needs_shipping, _needs_login],
    CheckoutStep.PLACE_ORDER: [_needs_shipping, _needs_login, _needs_cart],
}


def parse_step(value: str) -> CheckoutStep:
    try:
        return CheckoutStep(value)
    except ValueError:
        raise InvalidArgument(f"Unknown checkout step: {value}")


def parse_payment_method(value) -> PaymentMethod:
    try:
        return PaymentMethod(value)
    except ValueError:
        allowed = ", ".join(m.value for m in PaymentMethod)
        raise InvalidArgument(f"Unsupported payment method: {value} (expected one of {allowed})")


class CheckoutSession(BaseModel):
    session_id: str
    step: CheckoutStep = CheckoutStep.CART
    shippingAddress: Optional[ShippingAddress] = None
    paymentMethod: PaymentMethod = PaymentMethod.PAYPAL

    def _ensure_open(self):
        if self.step is CheckoutStep.COMPLETED:
            raise InvalidArgument("Checkout already completed")

    def enter(self, target: CheckoutStep, authenticated: bool = False, cart_size: int = 0) -> Transition:
        self._ensure_open()
        if target is CheckoutStep.COMPLETED:
            raise InvalidArgument("Checkout completes by placing the order")

        for guard in GUARDS[target]:
            redirect = guard(self, authenticated, cart_size)
            if redirect is not None:
                logger.warning("Checkout %s: %s blocked, redirecting to %s", self.session_id, target.value, redirect)
                return Transition(
                    step=self.step,
                    redirect=redirect,
                    next=target.value if redirect == LOGIN else None,
                )

        if target is not self.step and target not in TRANSITIONS[self.step]:
            # skipping ahead: send the shopper to the step after the current one
            following = ORDER[ORDER.index(self.step) + 1]
            return Transition(step=self.step, redirect=following.value)

        self.step = target
        return Transition(step=self.step)

    def save_shipping_address(self, address: ShippingAddress):
        self._ensure_open()
        if self.step is not CheckoutStep.SHIPPING:
            raise InvalidArgument("Shipping address can only be saved at the shipping step")
        self.shippingAddress = address

    def save_payment_method(self, method):
        self._ensure_open()
        if self.step is not CheckoutStep.PAYMENT:
            raise InvalidArgument("Payment method can only be saved at the payment step")
        self.paymentMethod = parse_payment_method(method)

    def complete(self):
        if self.step is not CheckoutStep.PLACE_ORDER:
            raise InvalidArgument("Order can only be placed from the place order step")
        self.step = CheckoutStep.COMPLETED


def load_session(db: Database, session_id: str) -> CheckoutSession:
    """Stored session for this id, or a fresh one sitting at the cart."""
    doc = db["checkout"].find_one({"session_id": session_id})
    if not doc:
        return CheckoutSession(session_id=session_id)
    doc.pop("_id", None)
    doc.pop("updated_at", None)
    return CheckoutSession(**doc)


def save_session(db: Database, session: CheckoutSession):
    doc = session.model_dump(mode="json")
    doc["updated_at"] = now()
    db["checkout"].replace_one({"session_id": session.session_id}, doc, upsert=True)


def discard_session(db: Database, session_id: str):
    db["checkout"].delete_one({"session_id": session_id})
