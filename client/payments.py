"""
Payment composer: individual, equal-split and custom-split payments for one trip.

A split is sent as independent per-member pay calls. There is no grouping
across them: calls that already succeeded stay recorded when a sibling fails,
and the outcome says exactly how many went through.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Union

import config
import schemas
from api import TripApi
from errors import ApiError, ApiResult, ValidationError
from utils.currency import format_amount, parse_amount
from utils.splits import EqualSplit, calculate_equal_split
from utils.validation import is_blank

logger = logging.getLogger(__name__)


class SplitMode(str, Enum):
    INDIVIDUAL = "individual"
    EQUAL = "equal"
    CUSTOM = "custom"


@dataclass
class PaymentForm:
    """Editable form state; survives failed submissions so the user can retry."""
    mode: SplitMode = SplitMode.INDIVIDUAL
    receiver: Optional[str] = None
    selected_members: list[str] = field(default_factory=list)
    amount: str = ""
    description: str = ""
    include_self: bool = True
    custom_amounts: dict[str, str] = field(default_factory=dict)

    def toggle_member(self, name: str):
        if name in self.selected_members:
            self.selected_members.remove(name)
        else:
            self.selected_members.append(name)

    def clear(self):
        self.receiver = None
        self.selected_members = []
        self.amount = ""
        self.description = ""
        self.custom_amounts = {}


@dataclass(frozen=True)
class MemberPaymentError:
    member: str
    error: ApiError


@dataclass(frozen=True)
class AllSucceeded:
    transactions: list[schemas.TransactionResponse]

    @property
    def success_count(self) -> int:
        return len(self.transactions)


@dataclass(frozen=True)
class PartialSuccess:
    success_count: int
    fail_count: int
    errors: list[MemberPaymentError]


@dataclass(frozen=True)
class AllFailed:
    errors: list[MemberPaymentError]


SplitOutcome = Union[AllSucceeded, PartialSuccess, AllFailed]


def aggregate_payments(attempts: list[tuple[str, ApiResult]]) -> SplitOutcome:
    """Fold per-member results into one outcome; only computed once every call has finished."""
    succeeded = [result.value for _, result in attempts if result.ok]
    errors = [MemberPaymentError(member, result.error) for member, result in attempts if not result.ok]
    if not errors:
        return AllSucceeded(transactions=succeeded)
    if not succeeded:
        return AllFailed(errors=errors)
    return PartialSuccess(success_count=len(succeeded), fail_count=len(errors), errors=errors)


class PaymentComposer:
    """
    Builds and sends the payments of one pay screen.

    `payer_name` is the current user's casual name in this trip. Only a
    complete success clears the form and sets `completed`; anything else
    leaves the form as it was.
    """

    def __init__(
        self,
        api: TripApi,
        trip_id: str,
        payer_name: Optional[str],
        max_concurrency: int = config.MAX_CONCURRENCY,
    ):
        self.api = api
        self.trip_id = trip_id
        self.payer_name = payer_name
        self.max_concurrency = max(1, max_concurrency)
        self.form = PaymentForm()
        self.is_processing = False
        self.error_message: Optional[str] = None
        self.success_message: Optional[str] = None
        self.member_errors: list[MemberPaymentError] = []
        self.completed = False

    # ---- previews ----

    def plan_equal_split(self) -> Optional[EqualSplit]:
        """Per-person amount for the current form, or None if it cannot be computed yet."""
        total = parse_amount(self.form.amount)
        if total is None or not self.form.selected_members:
            return None
        return calculate_equal_split(total, len(self.form.selected_members), self.form.include_self)

    # ---- submissions ----

    async def submit(self):
        if self.form.mode == SplitMode.INDIVIDUAL:
            return await self.submit_individual()
        if self.form.mode == SplitMode.EQUAL:
            return await self.submit_equal_split()
        return await self.submit_custom_split()

    async def submit_individual(self) -> ApiResult[schemas.TransactionResponse]:
        receiver = self.form.receiver
        amount = parse_amount(self.form.amount)
        if is_blank(receiver) or amount is None:
            return self._reject("Please select member and enter valid amount")
        if is_blank(self.payer_name):
            return self._reject("Your name in this trip could not be found")

        self._begin()
        description = self.form.description.strip() or f"Payment to {receiver}"
        request = self._pay_request(receiver, format_amount(amount), description)
        try:
            result = await self.api.call(self.api.pay, request)
        finally:
            self.is_processing = False

        if not result.ok:
            self.error_message = f"Payment failed: {result.error.message}"
            return result

        self.success_message = "Payment successful!"
        self.form.clear()
        self.completed = True
        return result

    async def submit_equal_split(self) -> Union[SplitOutcome, ApiResult]:
        members = list(self.form.selected_members)
        total = parse_amount(self.form.amount)
        if not members or total is None:
            return self._reject("Please select members and enter valid amount")
        if any(is_blank(member) for member in members):
            return self._reject("Member names cannot be blank")
        if is_blank(self.payer_name):
            return self._reject("Your name in this trip could not be found")

        split = calculate_equal_split(total, len(members), self.form.include_self)
        if split.per_person <= 0:
            return self._reject("Amount is too small to split between the selected members")
        description = self.form.description.strip() or "Equal split payment"
        logger.info(
            f"Equal split of {total} across {split.total_people} people: "
            f"{split.per_person_text} to each of {len(members)} members"
        )
        payments = [(member, split.per_person_text) for member in members]
        return await self._fan_out(payments, description, "Split payment")

    async def submit_custom_split(self) -> Union[SplitOutcome, ApiResult]:
        members = list(self.form.selected_members)
        payments = []
        for member in members:
            amount = parse_amount(self.form.custom_amounts.get(member))
            if amount is not None and not is_blank(member):
                payments.append((member, format_amount(amount)))
        if not payments:
            return self._reject("Please select members and enter valid amounts")
        if is_blank(self.payer_name):
            return self._reject("Your name in this trip could not be found")

        description = self.form.description.strip() or "Custom split payment"
        return await self._fan_out(payments, description, "Custom split")

    async def settle(self, settlement: schemas.Settlement) -> ApiResult[schemas.TransactionResponse]:
        """Record a displayed settlement as paid: the creditor side is sent as payer."""
        if parse_amount(settlement.amount) is None:
            return self._reject("Invalid settlement amount")
        self._begin()
        request = schemas.SettleRequest(
            trip_id=self.trip_id,
            payer_name=settlement.to,
            receiver_name=settlement.from_,
            amount=settlement.amount,
            description="Settlement payment",
        )
        try:
            result = await self.api.call(self.api.settle, request)
        finally:
            self.is_processing = False
        if not result.ok:
            self.error_message = f"Settlement failed: {result.error.message}"
        else:
            self.success_message = "Settlement recorded"
        return result

    # ---- internals ----

    def _pay_request(self, receiver: str, amount: str, description: str) -> schemas.PayRequest:
        return schemas.PayRequest(
            trip_id=self.trip_id,
            payer_name=self.payer_name.strip(),
            receiver_name=receiver.strip(),
            amount=amount,
            description=description,
        )

    async def _fan_out(self, payments: list[tuple[str, str]], description: str, label: str) -> SplitOutcome:
        """
        Issue one pay call per member, at most `max_concurrency` at a time.
        Calls start in selection order; the outcome waits for all of them.
        """
        self._begin()
        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def pay_member(member: str, amount: str) -> tuple[str, ApiResult]:
            async with semaphore:
                result = await self.api.call(self.api.pay, self._pay_request(member, amount, description))
            if not result.ok:
                logger.warning(f"{label} payment to {member} failed: {result.error.message}")
            return member, result

        try:
            attempts = await asyncio.gather(*(pay_member(member, amount) for member, amount in payments))
        finally:
            self.is_processing = False

        outcome = aggregate_payments(list(attempts))
        total = len(payments)
        if isinstance(outcome, AllSucceeded):
            self.success_message = f"{label} successful! ({total}/{total} payments sent)"
            self.form.clear()
            self.completed = True
        elif isinstance(outcome, PartialSuccess):
            self.success_message = f"{label} partially completed ({outcome.success_count}/{total} payments sent)"
            self.member_errors = outcome.errors
            self.error_message = "Failed payments: " + "; ".join(
                f"{e.member}: {e.error.message}" for e in outcome.errors
            )
        else:
            self.member_errors = outcome.errors
            self.error_message = "All payments failed"
        return outcome

    def _begin(self):
        self.is_processing = True
        self.error_message = None
        self.success_message = None
        self.member_errors = []

    def _reject(self, message: str) -> ApiResult:
        self.error_message = message
        self.success_message = None
        return ApiResult.failure(ValidationError(message))
