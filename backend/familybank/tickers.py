"""Background loops that fire due allowance and interest schedules.

A ticker scans once when it starts and then every ``interval`` seconds
until its stop event is set.  Each due schedule is handled in its own
session; a failure is logged and the scan moves on to the next schedule.
The ledger row and the ``next_run_at`` advance of a firing are committed
together, so a crash can never credit a slot without also consuming it.
"""

import abc
import asyncio
import logging
import os
from datetime import datetime
from typing import Type

from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from familybank import cadence, interest, ledger, schedules
from familybank.database import async_session
from familybank.locks import child_lock
from familybank.models import (
    AllowanceSchedule,
    InterestSchedule,
    ScheduleBase,
    KIND_ALLOWANCE,
    KIND_INTEREST,
    STATUS_ACTIVE,
    utcnow,
)

logger = logging.getLogger(__name__)

ALLOWANCE_TICK_SECONDS = float(os.getenv("ALLOWANCE_TICK_SECONDS", "300"))
INTEREST_TICK_SECONDS = float(os.getenv("INTEREST_TICK_SECONDS", "3600"))


class Ticker(abc.ABC):
    """Periodic scan over one kind of schedule.

    Subclasses set ``model`` and implement :meth:`execute_one`.
    """

    model: Type[ScheduleBase]
    name = "ticker"

    def __init__(self, interval: float, session_factory=async_session):
        self.interval = interval
        self.session_factory = session_factory

    async def list_due(self, db: AsyncSession, now: datetime) -> list[ScheduleBase]:
        return await schedules.list_due(db, self.model, now)

    @abc.abstractmethod
    async def execute_one(
        self, db: AsyncSession, schedule_id: int, child_id: int, now: datetime
    ) -> bool:
        """Fire one schedule; return ``True`` when it was consumed."""

    async def _reload_due(
        self, db: AsyncSession, schedule_id: int, now: datetime
    ) -> ScheduleBase | None:
        # The row may have been edited, paused or deleted since the scan listed it.
        result = await db.execute(
            select(self.model)
            .where(self.model.id == schedule_id)
            .execution_options(populate_existing=True)
        )
        schedule = result.scalar_one_or_none()
        if (
            schedule is None
            or schedule.status != STATUS_ACTIVE
            or schedule.next_run_at is None
            or schedule.next_run_at > now
        ):
            return None
        return schedule

    async def scan(
        self, now: datetime | None = None, stop: asyncio.Event | None = None
    ) -> int:
        """Fire every schedule due at ``now``; return how many were consumed."""
        now = now or utcnow()
        async with self.session_factory() as db:
            due = [(s.id, s.child_id) for s in await self.list_due(db, now)]
        if due:
            logger.debug("%s found %d due schedules", self.name, len(due))
        fired = 0
        for schedule_id, child_id in due:
            if stop is not None and stop.is_set():
                break
            try:
                async with self.session_factory() as db:
                    if await self.execute_one(db, schedule_id, child_id, now):
                        fired += 1
            except Exception:
                logger.exception(
                    "%s failed to process schedule %s for child %s",
                    self.name,
                    schedule_id,
                    child_id,
                )
        return fired

    async def run(self, stop: asyncio.Event) -> None:
        logger.info("Starting %s, interval %ss", self.name, self.interval)
        while not stop.is_set():
            try:
                await self.scan(stop=stop)
            except Exception:
                logger.exception("%s scan failed", self.name)
            try:
                await asyncio.wait_for(stop.wait(), timeout=self.interval)
            except asyncio.TimeoutError:
                pass
        logger.info("Stopped %s", self.name)


class AllowanceTicker(Ticker):
    model = AllowanceSchedule
    name = "allowance ticker"

    def __init__(self, interval: float = ALLOWANCE_TICK_SECONDS, session_factory=async_session):
        super().__init__(interval, session_factory)

    async def execute_one(self, db, schedule_id, child_id, now):
        async with child_lock(child_id):
            schedule = await self._reload_due(db, schedule_id, now)
            if schedule is None:
                return False
            slot = schedule.next_run_at
            amount_cents = schedule.amount_cents
            try:
                _, balance = await ledger.stage_entry(
                    db,
                    child_id,
                    schedule.parent_id,
                    amount_cents,
                    KIND_ALLOWANCE,
                    schedule.note,
                    schedule_id=schedule_id,
                )
                next_run_at = cadence.next_after_execution(
                    schedule.frequency, schedule.day_of_week, schedule.day_of_month, slot
                )
                schedules.stage_next_run_at(db, schedule, next_run_at)
                await db.commit()
            except Exception:
                await db.rollback()
                raise
        logger.info(
            "Paid allowance of %d cents to child %s from schedule %s (balance %d), next run %s",
            amount_cents,
            child_id,
            schedule_id,
            balance,
            next_run_at,
        )
        return True


class InterestTicker(Ticker):
    model = InterestSchedule
    name = "interest ticker"

    def __init__(self, interval: float = INTEREST_TICK_SECONDS, session_factory=async_session):
        super().__init__(interval, session_factory)

    async def execute_one(self, db, schedule_id, child_id, now):
        async with child_lock(child_id):
            schedule = await self._reload_due(db, schedule_id, now)
            if schedule is None:
                return False
            slot = schedule.next_run_at
            frequency = schedule.frequency
            amount_cents = 0
            try:
                child = await ledger.lock_child_row(db, child_id)
                rate_bps = child.interest_rate_bps
                if interest.already_accrued(child.last_interest_at, slot, frequency):
                    logger.info(
                        "Interest for child %s already accrued for slot %s", child_id, slot
                    )
                else:
                    amount_cents = interest.prorated_interest_cents(
                        child.balance_cents, rate_bps, frequency
                    )
                    if amount_cents >= 1:
                        await ledger.stage_entry(
                            db,
                            child_id,
                            schedule.parent_id,
                            amount_cents,
                            KIND_INTEREST,
                            interest.format_rate(rate_bps) + " annual rate",
                            schedule_id=schedule_id,
                            interest_at=slot,
                        )
                next_run_at = cadence.next_after_execution(
                    frequency, schedule.day_of_week, schedule.day_of_month, slot
                )
                schedules.stage_next_run_at(db, schedule, next_run_at)
                await db.commit()
            except Exception:
                await db.rollback()
                raise
        if amount_cents >= 1:
            logger.info(
                "Credited %d cents interest (%d bps, %s) to child %s, next run %s",
                amount_cents,
                rate_bps,
                frequency,
                child_id,
                next_run_at,
            )
        else:
            logger.info(
                "No interest due for child %s this period, next run %s",
                child_id,
                next_run_at,
            )
        return True


def build_tickers(session_factory=async_session) -> list[Ticker]:
    return [
        AllowanceTicker(session_factory=session_factory),
        InterestTicker(session_factory=session_factory),
    ]
