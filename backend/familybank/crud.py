"""Asynchronous CRUD helpers for families, parents and children.

Money and schedule changes live in :mod:`familybank.ledger` and
:mod:`familybank.schedules`; this module covers the tenant records around
them and the cascading deletes.
"""

import logging
from contextlib import AsyncExitStack

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select, delete

from familybank.auth import get_password_hash
from familybank.errors import AlreadyRegistered, NameTaken
from familybank.locks import child_lock, forget_child
from familybank.models import (
    AllowanceSchedule,
    Child,
    Family,
    InterestSchedule,
    Parent,
    Transaction,
)

logger = logging.getLogger(__name__)


async def create_family_with_parent(
    db: AsyncSession, slug: str, name: str, email: str, password: str
) -> tuple[Family, Parent]:
    """Create a family and its first parent in a single transaction."""

    slug_taken = await db.execute(select(Family.id).where(Family.slug == slug))
    if slug_taken.first() is not None or await get_parent_by_email(db, email):
        raise AlreadyRegistered()
    family = Family(slug=slug)
    db.add(family)
    await db.flush()  # ensure family.id is populated
    parent = Parent(
        family_id=family.id,
        name=name,
        email=email,
        password_hash=get_password_hash(password),
    )
    db.add(parent)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise AlreadyRegistered() from None
    await db.refresh(family)
    await db.refresh(parent)
    logger.info("Registered family %s (%s) with parent %s", family.id, slug, parent.id)
    return family, parent


async def get_family(db: AsyncSession, family_id: int) -> Family | None:
    result = await db.execute(select(Family).where(Family.id == family_id))
    return result.scalar_one_or_none()


async def get_parent_by_email(db: AsyncSession, email: str) -> Parent | None:
    """Return a parent by email or ``None`` if not found."""
    result = await db.execute(select(Parent).where(Parent.email == email))
    return result.scalar_one_or_none()


async def create_child(
    db: AsyncSession,
    family_id: int,
    first_name: str,
    password: str,
    interest_rate_bps: int = 0,
) -> Child:
    """Persist a new child; names are unique within a family."""

    result = await db.execute(
        select(Child.id).where(
            Child.family_id == family_id, Child.first_name == first_name
        )
    )
    if result.first() is not None:
        raise NameTaken()
    child = Child(
        family_id=family_id,
        first_name=first_name,
        password_hash=get_password_hash(password),
        interest_rate_bps=interest_rate_bps,
    )
    db.add(child)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise NameTaken() from None
    await db.refresh(child)
    logger.info("Created child %s in family %s", child.id, family_id)
    return child


async def get_child(db: AsyncSession, child_id: int) -> Child | None:
    """Fetch a child by id or ``None`` if not found."""
    result = await db.execute(
        select(Child)
        .where(Child.id == child_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def get_children_by_family(db: AsyncSession, family_id: int) -> list[Child]:
    result = await db.execute(
        select(Child).where(Child.family_id == family_id).order_by(Child.id)
    )
    return list(result.scalars().all())


async def _stage_child_delete(db: AsyncSession, child_ids: list[int]) -> None:
    await db.execute(delete(Transaction).where(Transaction.child_id.in_(child_ids)))
    await db.execute(
        delete(AllowanceSchedule).where(AllowanceSchedule.child_id.in_(child_ids))
    )
    await db.execute(
        delete(InterestSchedule).where(InterestSchedule.child_id.in_(child_ids))
    )
    await db.execute(delete(Child).where(Child.id.in_(child_ids)))


async def delete_child(db: AsyncSession, child: Child) -> None:
    """Remove a child with its schedules and ledger rows."""
    child_id = child.id
    async with child_lock(child_id):
        await _stage_child_delete(db, [child_id])
        await db.commit()
    forget_child(child_id)
    logger.info("Deleted child %s", child_id)


async def delete_family(db: AsyncSession, family: Family) -> None:
    """Remove a family, its parents and everything its children own."""
    family_id = family.id
    child_ids = [c.id for c in await get_children_by_family(db, family_id)]
    async with AsyncExitStack() as stack:
        for child_id in sorted(child_ids):
            await stack.enter_async_context(child_lock(child_id))
        if child_ids:
            await _stage_child_delete(db, child_ids)
        await db.execute(delete(Parent).where(Parent.family_id == family_id))
        await db.execute(delete(Family).where(Family.id == family_id))
        await db.commit()
    for child_id in child_ids:
        forget_child(child_id)
    logger.info("Deleted family %s with %d children", family_id, len(child_ids))
