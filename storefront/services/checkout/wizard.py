"""Guest checkout state machine."""
import asyncio
import logging
from datetime import datetime, timezone
from typing import Callable, Dict, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from storefront.services.cart.store import CartStore
from storefront.services.checkout.errors import (
    CheckoutError,
    NetworkError,
    SubmissionInProgressError,
    ValidationError,
)
from storefront.services.checkout.stages import CheckoutStep
from storefront.services.checkout.state import (
    CheckoutDraft,
    DineInSelection,
    PaymentMethod,
    TakeawaySelection,
    new_idempotency_key,
)
from storefront.services.checkout.validation import check_step, find_first_invalid_step
from storefront.services.offers.models import Offer, OfferResolution
from storefront.services.offers.resolver import OfferResolver
from storefront.services.ordering.models import OrderConfirmation, PaymentRedirect
from storefront.services.ordering.submitter import OrderSubmitter
from storefront.services.persistence.local import (
    APPLIED_OFFER_KEY,
    CHECKOUT_DRAFT_KEY,
    LocalStore,
)
from storefront.services.pricing.engine import PriceBreakdown, PricingPolicy, compute_totals

logger = logging.getLogger(__name__)

SubmissionResult = Union[OrderConfirmation, PaymentRedirect]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CheckoutWizard:
    """Four-step checkout: guest details, order type, payment, review.

    Moving forward requires the current step to validate. Moving back is
    always allowed except from the first step. Every field change is
    persisted so a reload restores the draft.
    """

    def __init__(
        self,
        cart_store: CartStore,
        local_store: LocalStore,
        submitter: OrderSubmitter,
        pricing_policy: PricingPolicy,
        offer_resolver: Optional[OfferResolver] = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.cart_store = cart_store
        self.local_store = local_store
        self.submitter = submitter
        self.pricing_policy = pricing_policy
        self.offer_resolver = offer_resolver or OfferResolver()
        self.clock = clock

        self._draft = CheckoutDraft()
        self._applied_offer: Optional[Offer] = None
        self._submission: Optional[asyncio.Task] = None
        self.field_errors: Dict[str, str] = {}
        self.banner: Optional[str] = None

    @classmethod
    def mount(
        cls,
        cart_store: CartStore,
        local_store: LocalStore,
        submitter: OrderSubmitter,
        pricing_policy: PricingPolicy,
        offer_resolver: Optional[OfferResolver] = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> "CheckoutWizard":
        """Create a wizard and restore cart, draft and applied offer."""
        wizard = cls(cart_store, local_store, submitter, pricing_policy, offer_resolver, clock)
        cart_store.load()
        wizard.restore()
        return wizard

    # State

    @property
    def step(self) -> CheckoutStep:
        return CheckoutStep(self._draft.step)

    @property
    def draft(self) -> CheckoutDraft:
        return self._draft

    @property
    def applied_offer(self) -> Optional[Offer]:
        return self._applied_offer

    @property
    def is_submitting(self) -> bool:
        return self._submission is not None and not self._submission.done()

    def restore(self) -> None:
        """Load the persisted draft and offer; unreadable entries are ignored."""
        raw_draft = self.local_store.get_json(CHECKOUT_DRAFT_KEY)
        if raw_draft is not None:
            try:
                draft = CheckoutDraft.model_validate(raw_draft)
                CheckoutStep(draft.step)
                self._draft = draft
            except (PydanticValidationError, ValueError):
                logger.warning("[CHECKOUT] Ignoring unreadable persisted draft")

        raw_offer = self.local_store.get_json(APPLIED_OFFER_KEY)
        if raw_offer is not None:
            try:
                self._applied_offer = Offer.model_validate(raw_offer)
            except PydanticValidationError:
                logger.warning("[CHECKOUT] Ignoring unreadable persisted offer")
                self.local_store.remove(APPLIED_OFFER_KEY)

        logger.info(f"[CHECKOUT] Draft restored at step {self.step.value}")

    def _persist(self) -> None:
        self.local_store.set_json(CHECKOUT_DRAFT_KEY, self._draft.model_dump(mode="json"))

    def _update(self, **changes) -> None:
        self._draft = self._draft.model_copy(update=changes)
        for name in changes:
            self.field_errors.pop(name, None)
        self._persist()

    # Field updates

    def update_guest(self, **fields: str) -> None:
        """Set any of first_name, last_name, email, phone."""
        guest = self._draft.guest.model_copy(update=fields)
        self._draft = self._draft.model_copy(update={"guest": guest})
        for name in fields:
            self.field_errors.pop(name, None)
        self._persist()

    def select_dine_in(self, table_number: str = "") -> None:
        self._update(order_selection=DineInSelection(table_number=str(table_number)))
        self.field_errors.pop("table_number", None)
        self.field_errors.pop("pickup_minutes", None)

    def select_takeaway(self, pickup_minutes: Optional[int] = None) -> None:
        self._update(order_selection=TakeawaySelection(pickup_minutes=pickup_minutes))
        self.field_errors.pop("table_number", None)
        self.field_errors.pop("pickup_minutes", None)

    def select_payment_method(self, method: Optional[Union[PaymentMethod, str]]) -> None:
        self._update(payment_method=PaymentMethod.coerce(method))

    def set_special_instructions(self, text: str) -> None:
        self._update(special_instructions=text)

    # Offers and totals

    def apply_offer(self, offer: Offer) -> OfferResolution:
        """Apply an offer. A rejected offer is dropped, not raised."""
        resolution = self.offer_resolver.resolve(offer, self.cart_store.subtotal, self.clock())
        if resolution.rejected:
            self.remove_offer()
            return resolution
        self._applied_offer = offer
        self.local_store.set_json(APPLIED_OFFER_KEY, offer.model_dump(mode="json"))
        return resolution

    def remove_offer(self) -> None:
        self._applied_offer = None
        self.local_store.remove(APPLIED_OFFER_KEY)

    def offer_resolution(self) -> OfferResolution:
        return self.offer_resolver.resolve(
            self._applied_offer, self.cart_store.subtotal, self.clock()
        )

    def totals(self) -> PriceBreakdown:
        """Totals rendered at every step; same policy the order is priced with."""
        return compute_totals(self.cart_store.items, self.offer_resolution(), self.pricing_policy)

    # Navigation

    def next(self) -> CheckoutStep:
        """
        Advance one step.

        Raises:
            ValidationError: current step incomplete; the step does not change
            CartEmptyError: on review with an empty cart
        """
        current = self.step
        try:
            check_step(current, self._draft, self.cart_store.cart)
        except ValidationError as e:
            self.field_errors = dict(e.field_errors)
            logger.info(
                f"[CHECKOUT] Blocked at {current.value}: {sorted(e.field_errors)}"
            )
            raise

        self.field_errors = {}
        following = current.next_step()
        if following is None:
            return current
        self._update(step=following.value)
        logger.info(f"[CHECKOUT] Step changed: {current.value} -> {following.value}")
        return following

    def previous(self) -> CheckoutStep:
        current = self.step
        earlier = current.previous_step()
        if earlier is None:
            return current
        self._update(step=earlier.value)
        logger.info(f"[CHECKOUT] Step changed: {current.value} -> {earlier.value}")
        return earlier

    def go_to(self, step: CheckoutStep) -> CheckoutStep:
        """Jump back to an earlier step (e.g. "edit" links on the review page)."""
        step = CheckoutStep(step)
        if step.index > self.step.index:
            raise ValueError("Cannot skip ahead; use next() so each step is validated")
        self._update(step=step.value)
        return step

    # Submission

    async def submit(self) -> SubmissionResult:
        """
        Place the order from the review step.

        The request runs in a shielded task: if the caller is cancelled
        (e.g. the guest navigates away) the request still completes and its
        outcome is applied.

        Raises:
            CheckoutError: not on the review step
            SubmissionInProgressError: a submission is already running
            ValidationError: an earlier step became invalid
            CartEmptyError: the cart is empty; nothing is sent
            NetworkError, PaymentInitializationError: from the submitter
        """
        if self.step != CheckoutStep.REVIEW:
            raise CheckoutError("Please review your order before placing it")
        if self.is_submitting:
            raise SubmissionInProgressError()

        invalid = find_first_invalid_step(self._draft, self.cart_store.cart)
        if invalid is not None:
            step, errors = invalid
            self.field_errors = dict(errors)
            self.banner = f"Please complete the {step.value.replace('_', ' ')} step"
            raise ValidationError(errors)

        try:
            check_step(CheckoutStep.REVIEW, self._draft, self.cart_store.cart)
        except CheckoutError as e:
            self.banner = e.message
            raise

        self.banner = None
        self._submission = asyncio.ensure_future(self._run_submission())
        self._submission.add_done_callback(_consume_result)
        return await asyncio.shield(self._submission)

    async def _run_submission(self) -> SubmissionResult:
        try:
            result = await self.submitter.submit(self._draft, self._applied_offer)
        except CheckoutError as e:
            if isinstance(e, NetworkError) and e.status_code == 409:
                # This request was refused under its key; the next attempt needs a fresh one
                self._update(idempotency_key=new_idempotency_key())
            self.banner = e.message
            raise

        if isinstance(result, OrderConfirmation):
            self._reset()
        return result

    async def complete_card_payment(self, order_id: int, payment_id: str) -> OrderConfirmation:
        """Handle the gateway return; only a Paid status finishes the checkout."""
        try:
            confirmation = await self.submitter.finalize_card_payment(order_id, payment_id)
        except CheckoutError as e:
            self.banner = e.message
            raise
        self._reset()
        return confirmation

    def _reset(self) -> None:
        # Persisted copies were already removed by the submitter
        self._draft = CheckoutDraft()
        self._applied_offer = None
        self.field_errors = {}
        self.banner = None


def _consume_result(task: asyncio.Task) -> None:
    # Abandoned submissions still have their outcome retrieved
    if not task.cancelled():
        task.exception()
