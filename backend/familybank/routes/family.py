"""Endpoints for the caller's family."""

import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from familybank.auth import get_current_parent
from familybank.crud import delete_family, get_children_by_family, get_family
from familybank.database import get_session
from familybank.errors import NotFound
from familybank.models import Parent
from familybank.schemas import ChildRead, FamilyRead

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/family", tags=["family"])


@router.get("", response_model=FamilyRead)
async def read_family(
    db: AsyncSession = Depends(get_session),
    parent: Parent = Depends(get_current_parent),
):
    family = await get_family(db, parent.family_id)
    if family is None:
        raise NotFound("Family not found.")
    children = await get_children_by_family(db, family.id)
    return FamilyRead(
        id=family.id,
        slug=family.slug,
        created_at=family.created_at,
        children=[ChildRead.model_validate(c) for c in children],
    )


@router.delete("", status_code=status.HTTP_204_NO_CONTENT)
async def remove_family(
    db: AsyncSession = Depends(get_session),
    parent: Parent = Depends(get_current_parent),
):
    """Delete the family with every parent, child, schedule and ledger row."""

    family = await get_family(db, parent.family_id)
    if family is None:
        raise NotFound("Family not found.")
    parent_id = parent.id
    await delete_family(db, family)
    logger.info("Family deleted by parent %s", parent_id)
    return None
