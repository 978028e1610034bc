"""Per-step validation rules for the checkout.

One table, keyed by step, is consulted both when moving forward and when
submitting.
"""
import re
from typing import Callable, Dict

from storefront.services.cart.models import Cart
from storefront.services.checkout.errors import CartEmptyError, ValidationError
from storefront.services.checkout.stages import STEP_ORDER, CheckoutStep
from storefront.services.checkout.state import (
    CheckoutDraft,
    DineInSelection,
    TakeawaySelection,
)

EMAIL_PATTERN = re.compile(r"\S+@\S+\.\S+")
PHONE_PATTERN = re.compile(r"^[\d\s\-\+\(\)]+$")

FieldErrors = Dict[str, str]


def validate_guest_details(draft: CheckoutDraft, cart: Cart) -> FieldErrors:
    errors: FieldErrors = {}
    guest = draft.guest
    if not guest.first_name.strip():
        errors["first_name"] = "First name is required"
    if not guest.last_name.strip():
        errors["last_name"] = "Last name is required"

    if not guest.email.strip():
        errors["email"] = "Email is required"
    elif not EMAIL_PATTERN.search(guest.email):
        errors["email"] = "Please enter a valid email address"

    if not guest.phone.strip():
        errors["phone"] = "Phone number is required"
    elif not PHONE_PATTERN.match(guest.phone):
        errors["phone"] = "Please enter a valid phone number"
    return errors


def validate_order_type(draft: CheckoutDraft, cart: Cart) -> FieldErrors:
    errors: FieldErrors = {}
    selection = draft.order_selection
    if isinstance(selection, DineInSelection):
        if not selection.table_number.strip():
            errors["table_number"] = "Table number is required for dine-in orders"
    elif isinstance(selection, TakeawaySelection):
        if selection.pickup_minutes is None:
            errors["pickup_minutes"] = "Pickup time is required for takeaway orders"
        elif selection.pickup_minutes <= 0:
            errors["pickup_minutes"] = "Please choose a valid pickup time"
    else:
        errors["order_type"] = "Please choose dine-in or takeaway"
    return errors


def validate_payment(draft: CheckoutDraft, cart: Cart) -> FieldErrors:
    if draft.payment_method is None:
        return {"payment_method": "Please select a payment method"}
    return {}


def validate_review(draft: CheckoutDraft, cart: Cart) -> FieldErrors:
    if cart.is_empty:
        raise CartEmptyError()
    return {}


STEP_VALIDATORS: Dict[CheckoutStep, Callable[[CheckoutDraft, Cart], FieldErrors]] = {
    CheckoutStep.GUEST_DETAILS: validate_guest_details,
    CheckoutStep.ORDER_TYPE: validate_order_type,
    CheckoutStep.PAYMENT: validate_payment,
    CheckoutStep.REVIEW: validate_review,
}


def check_step(step: CheckoutStep, draft: CheckoutDraft, cart: Cart) -> None:
    """Raise ValidationError (or CartEmptyError on review) if the step is incomplete."""
    errors = STEP_VALIDATORS[step](draft, cart)
    if errors:
        raise ValidationError(errors)


def find_first_invalid_step(draft: CheckoutDraft, cart: Cart):
    """Return (step, errors) for the earliest step with field errors, else None.

    Review is excluded; the empty-cart check happens separately at submit.
    """
    for step in STEP_ORDER:
        if step == CheckoutStep.REVIEW:
            break
        errors = STEP_VALIDATORS[step](draft, cart)
        if errors:
            return step, errors
    return None
