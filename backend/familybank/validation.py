"""Boundary checks for values that arrive from API requests.

Each helper returns the cleaned value or raises the matching
:class:`familybank.errors.BankError` subclass.
"""

import re

from familybank.cadence import FREQUENCIES, FREQUENCY_MONTHLY, WEEKDAY_FREQUENCIES
from familybank.errors import (
    InvalidAmount,
    InvalidFrequencyDayCombination,
    InvalidInterestRate,
    InvalidName,
    InvalidNote,
    InvalidPassword,
    InvalidSlug,
)
from familybank.interest import MAX_RATE_BPS

MIN_AMOUNT_CENTS = 1
MAX_AMOUNT_CENTS = 99_999_999
MAX_NOTE_LENGTH = 500
MAX_NAME_LENGTH = 50
MIN_PASSWORD_LENGTH = 6

SLUG_RE = re.compile(r"^[a-z0-9]([a-z0-9-]*[a-z0-9])?$")


def validate_amount(amount_cents: int) -> int:
    if not MIN_AMOUNT_CENTS <= amount_cents <= MAX_AMOUNT_CENTS:
        raise InvalidAmount()
    return amount_cents


def validate_note(note: str | None) -> str | None:
    """Trim ``note``; empty becomes ``None``."""
    if note is None:
        return None
    note = note.strip()
    if len(note) > MAX_NOTE_LENGTH:
        raise InvalidNote()
    return note or None


def validate_rate(rate_bps: int) -> int:
    if not 0 <= rate_bps <= MAX_RATE_BPS:
        raise InvalidInterestRate()
    return rate_bps


def validate_day_spec(
    frequency: str, day_of_week: int | None, day_of_month: int | None
) -> None:
    """Require exactly the day field that ``frequency`` uses."""
    if frequency not in FREQUENCIES:
        raise InvalidFrequencyDayCombination()
    if frequency in WEEKDAY_FREQUENCIES:
        if day_of_week is None:
            raise InvalidFrequencyDayCombination(
                "day_of_week is required for weekly and biweekly schedules."
            )
        if not 0 <= day_of_week <= 6:
            raise InvalidFrequencyDayCombination(
                "day_of_week must be between 0 (Sunday) and 6 (Saturday)."
            )
        if day_of_month is not None:
            raise InvalidFrequencyDayCombination(
                "day_of_month is not allowed for weekly and biweekly schedules."
            )
    else:
        if day_of_month is None:
            raise InvalidFrequencyDayCombination(
                "day_of_month is required for monthly schedules."
            )
        if not 1 <= day_of_month <= 31:
            raise InvalidFrequencyDayCombination(
                "day_of_month must be between 1 and 31."
            )
        if day_of_week is not None:
            raise InvalidFrequencyDayCombination(
                "day_of_week is not allowed for monthly schedules."
            )


def merge_day_spec(current: dict, changes: dict) -> dict:
    """Combine a stored day-spec with a partial update and validate the result.

    Switching frequency family drops the day field the new frequency does not
    use unless the update sets it explicitly, so ``{"frequency": "monthly",
    "day_of_month": 1}`` is enough to turn a weekly schedule monthly.
    """
    merged = {
        key: changes.get(key, current.get(key))
        for key in ("frequency", "day_of_week", "day_of_month")
    }
    if merged["frequency"] == FREQUENCY_MONTHLY:
        if "day_of_week" not in changes:
            merged["day_of_week"] = None
    elif "day_of_month" not in changes:
        merged["day_of_month"] = None
    validate_day_spec(
        merged["frequency"], merged["day_of_week"], merged["day_of_month"]
    )
    return merged


def validate_child_name(name: str) -> str:
    trimmed = name.strip()
    if not trimmed:
        raise InvalidName()
    if trimmed != name:
        raise InvalidName("First name cannot have leading or trailing whitespace.")
    if any(ch in name for ch in "<>&\"'"):
        raise InvalidName("First name contains invalid characters.")
    if len(name) > MAX_NAME_LENGTH:
        raise InvalidName("First name must be 50 characters or less.")
    return name


def validate_password(password: str) -> str:
    if len(password) < MIN_PASSWORD_LENGTH:
        raise InvalidPassword()
    return password


def validate_slug(slug: str) -> str:
    if not 3 <= len(slug) <= 30:
        raise InvalidSlug()
    if not SLUG_RE.match(slug):
        raise InvalidSlug(
            "Slug must contain only lowercase letters, numbers, and hyphens, "
            "and cannot start or end with a hyphen."
        )
    return slug
