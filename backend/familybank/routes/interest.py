"""Per-child interest schedule endpoints.

The rate itself is set through ``PUT /children/{id}/interest``; these
routes manage only the payout cadence.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from familybank import schedules
from familybank.auth import get_current_identity
from familybank.database import get_session
from familybank.errors import NotFound
from familybank.models import InterestSchedule, STATUS_ACTIVE, STATUS_PAUSED
from familybank.schemas import InterestScheduleRead, InterestScheduleRequest
from .deps import load_child

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/children", tags=["interest"])


async def _child_schedule(db: AsyncSession, child_id: int) -> InterestSchedule:
    schedule = await schedules.get_schedule_by_child(db, InterestSchedule, child_id)
    if schedule is None:
        raise NotFound("No interest schedule is set up for this child.")
    return schedule


@router.get("/{child_id}/interest-schedule", response_model=Optional[InterestScheduleRead])
async def read_interest_schedule(
    child_id: int,
    db: AsyncSession = Depends(get_session),
    identity=Depends(get_current_identity),
):
    await load_child(db, identity, child_id)
    return await schedules.get_schedule_by_child(db, InterestSchedule, child_id)


@router.put("/{child_id}/interest-schedule", response_model=InterestScheduleRead)
async def set_interest_schedule(
    child_id: int,
    data: InterestScheduleRequest,
    db: AsyncSession = Depends(get_session),
    identity=Depends(get_current_identity),
):
    await load_child(db, identity, child_id, mutate=True)
    _, parent = identity
    schedule = await schedules.upsert_interest_for_child(
        db, child_id, parent.id, data.frequency, data.day_of_week, data.day_of_month
    )
    logger.info("Interest schedule for child %s set by parent %s", child_id, parent.id)
    return schedule


@router.delete("/{child_id}/interest-schedule", status_code=status.HTTP_204_NO_CONTENT)
async def delete_interest_schedule(
    child_id: int,
    db: AsyncSession = Depends(get_session),
    identity=Depends(get_current_identity),
):
    await load_child(db, identity, child_id, mutate=True)
    await schedules.delete_schedule(db, await _child_schedule(db, child_id))
    return None


@router.post("/{child_id}/interest-schedule/pause", response_model=InterestScheduleRead)
async def pause_interest_schedule(
    child_id: int,
    db: AsyncSession = Depends(get_session),
    identity=Depends(get_current_identity),
):
    await load_child(db, identity, child_id, mutate=True)
    schedule = await _child_schedule(db, child_id)
    return await schedules.update_schedule_status(db, schedule, STATUS_PAUSED)


@router.post("/{child_id}/interest-schedule/resume", response_model=InterestScheduleRead)
async def resume_interest_schedule(
    child_id: int,
    db: AsyncSession = Depends(get_session),
    identity=Depends(get_current_identity),
):
    await load_child(db, identity, child_id, mutate=True)
    schedule = await _child_schedule(db, child_id)
    return await schedules.update_schedule_status(db, schedule, STATUS_ACTIVE)
