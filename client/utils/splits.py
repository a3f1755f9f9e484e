"""Split calculation utilities for equal-split payments."""

from dataclasses import dataclass
from decimal import Decimal

from utils.currency import round_cents


@dataclass(frozen=True)
class EqualSplit:
    total_people: int
    per_person: Decimal

    @property
    def per_person_text(self) -> str:
        return f"{self.per_person:.2f}"


def calculate_equal_split(total_amount: Decimal, member_count: int, include_self: bool) -> EqualSplit:
    """
    Divide a total evenly across the selected members (and optionally the payer).

    Algorithm:
    1. total_people = member_count + (1 if include_self else 0)
    2. per_person = total_amount / total_people, rounded half-up to cents
    3. Every selected member is charged the same per_person amount

    The rounding remainder is not redistributed: 100 split three ways gives
    33.33 each, so the charged total is 99.99.
    """
    if member_count < 1:
        raise ValueError("At least one member must be selected")
    total_people = member_count + (1 if include_self else 0)
    per_person = round_cents(total_amount / Decimal(total_people))
    return EqualSplit(total_people=total_people, per_person=per_person)
