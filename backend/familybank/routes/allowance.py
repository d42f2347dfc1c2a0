"""Per-child allowance endpoints."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from familybank import schedules
from familybank.auth import get_current_identity
from familybank.database import get_session
from familybank.errors import NotFound
from familybank.models import AllowanceSchedule, STATUS_ACTIVE, STATUS_PAUSED
from familybank.schemas import (
    AllowanceScheduleRead,
    ChildAllowanceRequest,
    UpcomingAllowance,
    UpcomingAllowancesResponse,
)
from familybank.validation import validate_amount, validate_note
from .deps import load_child

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/children", tags=["allowance"])


async def _child_allowance(db: AsyncSession, child_id: int) -> AllowanceSchedule:
    schedule = await schedules.get_schedule_by_child(db, AllowanceSchedule, child_id)
    if schedule is None:
        raise NotFound("No allowance is set up for this child.")
    return schedule


@router.get("/{child_id}/allowance", response_model=Optional[AllowanceScheduleRead])
async def read_allowance(
    child_id: int,
    db: AsyncSession = Depends(get_session),
    identity=Depends(get_current_identity),
):
    """Return the child's allowance or ``null`` when none is set up."""
    await load_child(db, identity, child_id)
    return await schedules.get_schedule_by_child(db, AllowanceSchedule, child_id)


@router.put("/{child_id}/allowance", response_model=AllowanceScheduleRead)
async def set_allowance(
    child_id: int,
    data: ChildAllowanceRequest,
    db: AsyncSession = Depends(get_session),
    identity=Depends(get_current_identity),
):
    await load_child(db, identity, child_id, mutate=True)
    amount = validate_amount(data.amount_cents)
    note = validate_note(data.note)
    _, parent = identity
    schedule = await schedules.upsert_allowance_for_child(
        db,
        child_id,
        parent.id,
        amount,
        data.frequency,
        data.day_of_week,
        data.day_of_month,
        note,
    )
    logger.info("Allowance for child %s set by parent %s", child_id, parent.id)
    return schedule


@router.delete("/{child_id}/allowance", status_code=status.HTTP_204_NO_CONTENT)
async def delete_allowance(
    child_id: int,
    db: AsyncSession = Depends(get_session),
    identity=Depends(get_current_identity),
):
    await load_child(db, identity, child_id, mutate=True)
    await schedules.delete_schedule(db, await _child_allowance(db, child_id))
    return None


@router.post("/{child_id}/allowance/pause", response_model=AllowanceScheduleRead)
async def pause_allowance(
    child_id: int,
    db: AsyncSession = Depends(get_session),
    identity=Depends(get_current_identity),
):
    await load_child(db, identity, child_id, mutate=True)
    schedule = await _child_allowance(db, child_id)
    return await schedules.update_schedule_status(db, schedule, STATUS_PAUSED)


@router.post("/{child_id}/allowance/resume", response_model=AllowanceScheduleRead)
async def resume_allowance(
    child_id: int,
    db: AsyncSession = Depends(get_session),
    identity=Depends(get_current_identity),
):
    await load_child(db, identity, child_id, mutate=True)
    schedule = await _child_allowance(db, child_id)
    return await schedules.update_schedule_status(db, schedule, STATUS_ACTIVE)


@router.get("/{child_id}/upcoming-allowances", response_model=UpcomingAllowancesResponse)
async def upcoming_allowances(
    child_id: int,
    db: AsyncSession = Depends(get_session),
    identity=Depends(get_current_identity),
):
    """List the next payout of each active allowance."""
    await load_child(db, identity, child_id)
    active = await schedules.list_active_by_child(db, AllowanceSchedule, child_id)
    return UpcomingAllowancesResponse(
        allowances=[
            UpcomingAllowance(
                schedule_id=s.id,
                amount_cents=s.amount_cents,
                next_date=s.next_run_at,
                note=s.note,
            )
            for s in active
            if s.next_run_at is not None
        ]
    )
