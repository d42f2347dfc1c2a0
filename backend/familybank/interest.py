"""Interest proration helpers.

Rates are annual and expressed in basis points.  A per-period accrual is
``balance * rate_bps / periods_per_year / 10_000`` rounded half away from
zero to whole cents; the arithmetic is done in integers so no float ever
touches a balance.
"""

from datetime import datetime, timedelta

from familybank.cadence import (
    FREQUENCY_BIWEEKLY,
    FREQUENCY_MONTHLY,
    FREQUENCY_WEEKLY,
    periods_per_year,
)

MAX_RATE_BPS = 10_000

PERIOD_DAYS = {FREQUENCY_WEEKLY: 7, FREQUENCY_BIWEEKLY: 14}


def round_half_away(numerator: int, denominator: int) -> int:
    """Divide and round to the nearest integer, ties away from zero."""
    if denominator <= 0:
        raise ValueError("denominator must be positive")
    sign = -1 if numerator < 0 else 1
    return sign * ((2 * abs(numerator) + denominator) // (2 * denominator))


def prorated_interest_cents(balance_cents: int, rate_bps: int, frequency: str) -> int:
    """Interest earned on ``balance_cents`` over one period of ``frequency``.

    Returns ``0`` for non-positive balances or rates.
    """
    if balance_cents <= 0 or rate_bps <= 0:
        return 0
    return round_half_away(
        balance_cents * rate_bps, periods_per_year(frequency) * MAX_RATE_BPS
    )


def format_rate(rate_bps: int) -> str:
    """Render basis points as a percentage, e.g. ``500 -> '5.00%'``."""
    return "%d.%02d%%" % divmod(rate_bps, 100)


def already_accrued(
    last_interest_at: datetime | None, slot: datetime, frequency: str
) -> bool:
    """True when the accrual for ``slot`` has already been recorded.

    ``last_interest_at`` holds the slot instant of the most recent accrual.
    Any accrual at or after ``slot`` covers it.  Otherwise a child gets one
    accrual per period window: the UTC calendar month for monthly schedules,
    the 7 or 14 days ending at ``slot`` for weekly and biweekly ones.  The
    window check matters after a cadence edit moves ``next_run_at`` closer
    to the previous accrual.
    """
    if last_interest_at is None:
        return False
    if last_interest_at >= slot:
        return True
    if frequency == FREQUENCY_MONTHLY:
        return (last_interest_at.year, last_interest_at.month) == (
            slot.year,
            slot.month,
        )
    return last_interest_at > slot - timedelta(days=PERIOD_DAYS[frequency])
