"""
Display utilities for user and member names
"""
import re
from typing import Iterable, Optional


def get_user_display_name(first_name: Optional[str], last_name: Optional[str]) -> Optional[str]:
    """
    Name the backend uses for a user in trip member lists: "<first>_<last>".
    Returns None unless both parts are known.
    """
    if first_name is None or last_name is None:
        return None
    return f"{first_name}_{last_name}"


def selectable_members(
    free_members: Iterable[str],
    not_free_members: Iterable[str],
    current_user_name: Optional[str],
) -> list[str]:
    """
    Members a payment can be addressed to.

    Both partitions are merged (free first, in server order) and the
    current user's own casual name is left out.

    Example: free=["A", "B"], not_free=["C"], current="A" -> ["B", "C"]
    """
    merged = list(free_members) + list(not_free_members)
    return [name for name in merged if name != current_user_name]


def normalize_phone_number(phone_number: Optional[str]) -> str:
    """
    Reduce a contact phone number to its last 10 digits.
    Example: "+91 98765-43210" -> "9876543210"
    """
    if not phone_number or not phone_number.strip():
        return ""
    digits = re.sub(r"\D", "", phone_number)
    return digits[-10:] if len(digits) > 10 else digits
