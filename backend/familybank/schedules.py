"""Persistent registry for allowance and interest schedules.

The helpers are parameterised by the schedule model class so both kinds
share one implementation.  A child owns at most one schedule of each kind.
Every mutation runs under :func:`familybank.locks.child_lock` so it
serializes with the tickers firing the same child's schedules, and every
change to the cadence recomputes ``next_run_at`` in the same commit.
"""

import logging
from datetime import datetime
from typing import Type, TypeVar

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from familybank import cadence
from familybank.errors import AlreadyActive, AlreadyPaused, NotFound, ScheduleConflict
from familybank.locks import child_lock
from familybank.models import (
    AllowanceSchedule,
    Child,
    InterestSchedule,
    ScheduleBase,
    Transaction,
    STATUS_ACTIVE,
    STATUS_PAUSED,
    utcnow,
)
from familybank.validation import merge_day_spec, validate_day_spec

logger = logging.getLogger(__name__)

S = TypeVar("S", AllowanceSchedule, InterestSchedule)

DAY_SPEC_FIELDS = ("frequency", "day_of_week", "day_of_month")


async def _reload(db: AsyncSession, model: Type[S], schedule_id: int) -> S:
    result = await db.execute(
        select(model)
        .where(model.id == schedule_id)
        .execution_options(populate_existing=True)
    )
    schedule = result.scalar_one_or_none()
    if schedule is None:
        raise NotFound(f"{model.label.capitalize()} not found.")
    return schedule


async def _commit(db: AsyncSession, schedule: ScheduleBase) -> None:
    db.add(schedule)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ScheduleConflict() from None
    await db.refresh(schedule)


async def _stage_create(
    db: AsyncSession,
    model: Type[S],
    child_id: int,
    parent_id: int,
    frequency: str,
    day_of_week: int | None,
    day_of_month: int | None,
    now: datetime,
    **extra,
) -> S:
    validate_day_spec(frequency, day_of_week, day_of_month)
    if await get_schedule_by_child(db, model, child_id) is not None:
        raise ScheduleConflict()
    schedule = model(
        child_id=child_id,
        parent_id=parent_id,
        frequency=frequency,
        day_of_week=day_of_week,
        day_of_month=day_of_month,
        status=STATUS_ACTIVE,
        next_run_at=cadence.next_run(frequency, day_of_week, day_of_month, now),
        created_at=now,
        updated_at=now,
        **extra,
    )
    await _commit(db, schedule)
    logger.info(
        "Created %s %s for child %s, next run %s",
        model.label,
        schedule.id,
        child_id,
        schedule.next_run_at,
    )
    return schedule


async def _stage_update(
    db: AsyncSession, schedule: S, changes: dict, now: datetime
) -> S:
    schedule = await _reload(db, type(schedule), schedule.id)
    cadence_changed = any(key in changes for key in DAY_SPEC_FIELDS)
    if cadence_changed:
        current = {key: getattr(schedule, key) for key in DAY_SPEC_FIELDS}
        changes = {**changes, **merge_day_spec(current, changes)}
    for field, value in changes.items():
        setattr(schedule, field, value)
    if cadence_changed:
        schedule.next_run_at = cadence.next_run(
            schedule.frequency, schedule.day_of_week, schedule.day_of_month, now
        )
    schedule.updated_at = now
    await _commit(db, schedule)
    logger.info(
        "Updated %s %s (%s)", schedule.label, schedule.id, ", ".join(sorted(changes))
    )
    return schedule


async def create_schedule(
    db: AsyncSession,
    model: Type[S],
    child_id: int,
    parent_id: int,
    frequency: str,
    day_of_week: int | None = None,
    day_of_month: int | None = None,
    now: datetime | None = None,
    **extra,
) -> S:
    """Create an active schedule with ``next_run_at`` computed from ``now``.

    Raises :class:`ScheduleConflict` when the child already has one.
    """
    async with child_lock(child_id):
        return await _stage_create(
            db,
            model,
            child_id,
            parent_id,
            frequency,
            day_of_week,
            day_of_month,
            now or utcnow(),
            **extra,
        )


async def get_schedule(db: AsyncSession, model: Type[S], schedule_id: int) -> S | None:
    result = await db.execute(select(model).where(model.id == schedule_id))
    return result.scalar_one_or_none()


async def get_schedule_by_child(
    db: AsyncSession, model: Type[S], child_id: int
) -> S | None:
    result = await db.execute(select(model).where(model.child_id == child_id))
    return result.scalar_one_or_none()


async def list_schedules_by_family(
    db: AsyncSession, model: Type[S], family_id: int
) -> list[tuple[S, str]]:
    """Return ``(schedule, child first name)`` pairs for a family."""
    result = await db.execute(
        select(model, Child.first_name)
        .join(Child, Child.id == model.child_id)
        .where(Child.family_id == family_id)
        .order_by(model.id)
    )
    return [(schedule, name) for schedule, name in result.all()]


async def list_active_by_child(
    db: AsyncSession, model: Type[S], child_id: int
) -> list[S]:
    result = await db.execute(
        select(model)
        .where(model.child_id == child_id, model.status == STATUS_ACTIVE)
        .order_by(model.next_run_at, model.id)
    )
    return list(result.scalars().all())


async def update_schedule_fields(
    db: AsyncSession, schedule: S, changes: dict, now: datetime | None = None
) -> S:
    """Apply a partial update.

    A change to frequency or either day field is validated against the
    stored values and recomputes ``next_run_at`` from ``now``.
    """
    async with child_lock(schedule.child_id):
        return await _stage_update(db, schedule, changes, now or utcnow())


async def update_schedule_status(
    db: AsyncSession, schedule: S, status: str, now: datetime | None = None
) -> S:
    """Pause or resume.  Resuming recomputes ``next_run_at`` from ``now``."""
    if status not in (STATUS_ACTIVE, STATUS_PAUSED):
        raise ValueError(f"unknown schedule status {status!r}")
    now = now or utcnow()
    async with child_lock(schedule.child_id):
        schedule = await _reload(db, type(schedule), schedule.id)
        if schedule.status == status:
            raise AlreadyPaused() if status == STATUS_PAUSED else AlreadyActive()
        schedule.status = status
        if status == STATUS_ACTIVE:
            schedule.next_run_at = cadence.next_run(
                schedule.frequency, schedule.day_of_week, schedule.day_of_month, now
            )
        schedule.updated_at = now
        await _commit(db, schedule)
    logger.info("Set %s %s to %s", schedule.label, schedule.id, status)
    return schedule


def stage_next_run_at(db: AsyncSession, schedule: ScheduleBase, next_run_at: datetime) -> None:
    """Record a new ``next_run_at`` in the open transaction without committing."""
    schedule.next_run_at = next_run_at
    schedule.updated_at = utcnow()
    db.add(schedule)


async def update_next_run_at(
    db: AsyncSession, schedule: S, next_run_at: datetime
) -> S:
    async with child_lock(schedule.child_id):
        schedule = await _reload(db, type(schedule), schedule.id)
        stage_next_run_at(db, schedule, next_run_at)
        await _commit(db, schedule)
    return schedule


async def _stage_delete(db: AsyncSession, schedule: ScheduleBase) -> None:
    schedule_id = schedule.id
    model = type(schedule)
    await db.execute(
        update(Transaction)
        .where(
            Transaction.schedule_id == schedule_id,
            Transaction.kind == model.ledger_kind,
        )
        .values(schedule_id=None)
    )
    await db.delete(schedule)
    await db.commit()
    logger.info("Deleted %s %s", model.label, schedule_id)


async def delete_schedule(db: AsyncSession, schedule: ScheduleBase) -> None:
    """Delete a schedule; ledger rows it produced keep existing, unlinked."""
    async with child_lock(schedule.child_id):
        await _stage_delete(db, schedule)


async def list_due(db: AsyncSession, model: Type[S], now: datetime) -> list[S]:
    """Active schedules with ``next_run_at <= now``, oldest slot first."""
    result = await db.execute(
        select(model)
        .where(
            model.status == STATUS_ACTIVE,
            model.next_run_at.is_not(None),
            model.next_run_at <= now,
        )
        .order_by(model.next_run_at, model.id)
    )
    return list(result.scalars().all())


async def upsert_allowance_for_child(
    db: AsyncSession,
    child_id: int,
    parent_id: int,
    amount_cents: int,
    frequency: str,
    day_of_week: int | None = None,
    day_of_month: int | None = None,
    note: str | None = None,
    now: datetime | None = None,
) -> AllowanceSchedule:
    """Replace the child's allowance, creating it when there is none."""
    now = now or utcnow()
    validate_day_spec(frequency, day_of_week, day_of_month)
    async with child_lock(child_id):
        existing = await get_schedule_by_child(db, AllowanceSchedule, child_id)
        if existing is None:
            return await _stage_create(
                db,
                AllowanceSchedule,
                child_id,
                parent_id,
                frequency,
                day_of_week,
                day_of_month,
                now,
                amount_cents=amount_cents,
                note=note,
            )
        return await _stage_update(
            db,
            existing,
            {
                "amount_cents": amount_cents,
                "note": note,
                "frequency": frequency,
                "day_of_week": day_of_week,
                "day_of_month": day_of_month,
            },
            now,
        )


async def upsert_interest_for_child(
    db: AsyncSession,
    child_id: int,
    parent_id: int,
    frequency: str,
    day_of_week: int | None = None,
    day_of_month: int | None = None,
    now: datetime | None = None,
) -> InterestSchedule:
    """Replace the child's interest schedule, creating it when there is none."""
    now = now or utcnow()
    validate_day_spec(frequency, day_of_week, day_of_month)
    async with child_lock(child_id):
        existing = await get_schedule_by_child(db, InterestSchedule, child_id)
        if existing is None:
            return await _stage_create(
                db,
                InterestSchedule,
                child_id,
                parent_id,
                frequency,
                day_of_week,
                day_of_month,
                now,
            )
        return await _stage_update(
            db,
            existing,
            {
                "frequency": frequency,
                "day_of_week": day_of_week,
                "day_of_month": day_of_month,
            },
            now,
        )


async def set_interest(
    db: AsyncSession,
    child_id: int,
    parent_id: int,
    rate_bps: int,
    frequency: str | None = None,
    day_of_week: int | None = None,
    day_of_month: int | None = None,
    now: datetime | None = None,
) -> tuple[int, InterestSchedule | None]:
    """Set a child's annual rate and keep the interest schedule in step.

    A positive rate requires a cadence and upserts the schedule; a zero rate
    removes any schedule.
    """
    now = now or utcnow()
    if rate_bps > 0:
        validate_day_spec(frequency, day_of_week, day_of_month)
    async with child_lock(child_id):
        result = await db.execute(
            select(Child)
            .where(Child.id == child_id)
            .execution_options(populate_existing=True)
        )
        child = result.scalar_one_or_none()
        if child is None:
            raise NotFound("Child not found.")
        child.interest_rate_bps = rate_bps
        child.updated_at = now
        db.add(child)
        await db.commit()
        logger.info("Set interest rate of child %s to %d bps", child_id, rate_bps)

        existing = await get_schedule_by_child(db, InterestSchedule, child_id)
        if rate_bps == 0:
            if existing is not None:
                await _stage_delete(db, existing)
            return rate_bps, None
        if existing is None:
            schedule = await _stage_create(
                db,
                InterestSchedule,
                child_id,
                parent_id,
                frequency,
                day_of_week,
                day_of_month,
                now,
            )
        else:
            schedule = await _stage_update(
                db,
                existing,
                {
                    "frequency": frequency,
                    "day_of_week": day_of_week,
                    "day_of_month": day_of_month,
                },
                now,
            )
    return rate_bps, schedule
