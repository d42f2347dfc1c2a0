"""Family-wide allowance schedule endpoints."""

import logging
from typing import List
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from familybank import schedules
from familybank.auth import get_current_parent
from familybank.database import get_session
from familybank.errors import InvalidAmount, NotFound
from familybank.models import AllowanceSchedule, Parent, STATUS_ACTIVE, STATUS_PAUSED
from familybank.schemas import (
    AllowanceScheduleCreate,
    AllowanceScheduleRead,
    AllowanceScheduleUpdate,
)
from familybank.validation import validate_amount, validate_note
from .deps import load_child

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/schedules", tags=["schedules"])


async def _load_schedule(
    db: AsyncSession, parent: Parent, schedule_id: int
) -> AllowanceSchedule:
    schedule = await schedules.get_schedule(db, AllowanceSchedule, schedule_id)
    if schedule is None:
        raise NotFound("Schedule not found.")
    # Schedules of other families are reported as missing.
    try:
        await load_child(db, ("parent", parent), schedule.child_id, mutate=True)
    except NotFound:
        raise NotFound("Schedule not found.") from None
    return schedule


@router.post("", response_model=AllowanceScheduleRead, status_code=status.HTTP_201_CREATED)
async def create_schedule(
    data: AllowanceScheduleCreate,
    db: AsyncSession = Depends(get_session),
    parent: Parent = Depends(get_current_parent),
):
    child = await load_child(db, ("parent", parent), data.child_id, mutate=True)
    amount = validate_amount(data.amount_cents)
    note = validate_note(data.note)
    schedule = await schedules.create_schedule(
        db,
        AllowanceSchedule,
        child.id,
        parent.id,
        data.frequency,
        data.day_of_week,
        data.day_of_month,
        amount_cents=amount,
        note=note,
    )
    logger.info("Allowance schedule %s created by parent %s", schedule.id, parent.id)
    return schedule


@router.get("", response_model=List[AllowanceScheduleRead])
async def list_schedules(
    db: AsyncSession = Depends(get_session),
    parent: Parent = Depends(get_current_parent),
):
    rows = await schedules.list_schedules_by_family(db, AllowanceSchedule, parent.family_id)
    return [
        AllowanceScheduleRead.model_validate(schedule).model_copy(
            update={"child_first_name": first_name}
        )
        for schedule, first_name in rows
    ]


@router.get("/{schedule_id}", response_model=AllowanceScheduleRead)
async def read_schedule(
    schedule_id: int,
    db: AsyncSession = Depends(get_session),
    parent: Parent = Depends(get_current_parent),
):
    return await _load_schedule(db, parent, schedule_id)


@router.put("/{schedule_id}", response_model=AllowanceScheduleRead)
async def update_schedule(
    schedule_id: int,
    data: AllowanceScheduleUpdate,
    db: AsyncSession = Depends(get_session),
    parent: Parent = Depends(get_current_parent),
):
    """Partially update a schedule; cadence changes recompute the next run."""
    schedule = await _load_schedule(db, parent, schedule_id)
    changes = data.model_dump(exclude_unset=True)
    if "amount_cents" in changes:
        if changes["amount_cents"] is None:
            raise InvalidAmount()
        validate_amount(changes["amount_cents"])
    if "note" in changes:
        changes["note"] = validate_note(changes["note"])
    updated = await schedules.update_schedule_fields(db, schedule, changes)
    logger.info("Allowance schedule %s updated by parent %s", schedule_id, parent.id)
    return updated


@router.delete("/{schedule_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_schedule(
    schedule_id: int,
    db: AsyncSession = Depends(get_session),
    parent: Parent = Depends(get_current_parent),
):
    schedule = await _load_schedule(db, parent, schedule_id)
    await schedules.delete_schedule(db, schedule)
    return None


@router.post("/{schedule_id}/pause", response_model=AllowanceScheduleRead)
async def pause_schedule(
    schedule_id: int,
    db: AsyncSession = Depends(get_session),
    parent: Parent = Depends(get_current_parent),
):
    schedule = await _load_schedule(db, parent, schedule_id)
    return await schedules.update_schedule_status(db, schedule, STATUS_PAUSED)


@router.post("/{schedule_id}/resume", response_model=AllowanceScheduleRead)
async def resume_schedule(
    schedule_id: int,
    db: AsyncSession = Depends(get_session),
    parent: Parent = Depends(get_current_parent),
):
    """Reactivate a paused schedule; the next run is computed from now."""
    schedule = await _load_schedule(db, parent, schedule_id)
    return await schedules.update_schedule_status(db, schedule, STATUS_ACTIVE)
