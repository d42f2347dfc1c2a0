"""Routes for managing child accounts and their interest rate."""

import logging
from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from familybank.auth import get_current_identity, get_current_parent
from familybank.crud import create_child, delete_child, get_children_by_family
from familybank.database import get_session
from familybank.interest import format_rate
from familybank.models import Parent
from familybank.schedules import set_interest
from familybank.schemas import (
    ChildCreate,
    ChildRead,
    InterestScheduleRead,
    SetInterestRequest,
    SetInterestResponse,
)
from familybank.validation import validate_child_name, validate_password, validate_rate
from .deps import load_child

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/children", tags=["children"])


@router.post("", response_model=ChildRead, status_code=status.HTTP_201_CREATED)
async def add_child(
    data: ChildCreate,
    db: AsyncSession = Depends(get_session),
    parent: Parent = Depends(get_current_parent),
):
    validate_child_name(data.first_name)
    validate_password(data.password)
    validate_rate(data.interest_rate_bps)
    child = await create_child(
        db, parent.family_id, data.first_name, data.password, data.interest_rate_bps
    )
    logger.info("Child %s created by parent %s", child.id, parent.id)
    return child


@router.get("", response_model=List[ChildRead])
async def list_children(
    db: AsyncSession = Depends(get_session),
    parent: Parent = Depends(get_current_parent),
):
    return await get_children_by_family(db, parent.family_id)


@router.get("/{child_id}", response_model=ChildRead)
async def read_child(
    child_id: int,
    db: AsyncSession = Depends(get_session),
    identity=Depends(get_current_identity),
):
    return await load_child(db, identity, child_id)


@router.delete("/{child_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_child(
    child_id: int,
    db: AsyncSession = Depends(get_session),
    identity=Depends(get_current_identity),
):
    """Delete a child together with its schedules and transactions."""

    child = await load_child(db, identity, child_id, mutate=True)
    await delete_child(db, child)
    return None


@router.put("/{child_id}/interest", response_model=SetInterestResponse)
async def update_interest(
    child_id: int,
    data: SetInterestRequest,
    db: AsyncSession = Depends(get_session),
    identity=Depends(get_current_identity),
):
    """Set the annual rate; a positive rate also sets the payout cadence."""

    child = await load_child(db, identity, child_id, mutate=True)
    validate_rate(data.interest_rate_bps)
    _, parent = identity
    rate_bps, schedule = await set_interest(
        db,
        child.id,
        parent.id,
        data.interest_rate_bps,
        data.frequency,
        data.day_of_week,
        data.day_of_month,
    )
    return SetInterestResponse(
        interest_rate_bps=rate_bps,
        interest_rate_display=format_rate(rate_bps),
        schedule=InterestScheduleRead.model_validate(schedule) if schedule else None,
    )
