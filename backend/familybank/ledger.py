"""Ledger: the append-only transaction log and the balance it drives.

Every money movement goes through :func:`stage_entry`, which locks the
child row, checks the balance invariant, inserts the ledger row and moves
the balance inside the session's open transaction.  The public helpers
wrap it with the child's lock and a commit, so a reader never sees a row
whose effect on the balance has not landed.
"""

import logging
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from familybank.errors import InsufficientFunds, NotFound
from familybank.locks import child_lock
from familybank.models import (
    Child,
    Transaction,
    KIND_ALLOWANCE,
    KIND_DEPOSIT,
    KIND_INTEREST,
    KIND_WITHDRAWAL,
    utcnow,
)

logger = logging.getLogger(__name__)


def clean_note(note: str | None) -> str | None:
    """Trim a note; blank notes are stored as ``None``."""
    if note is None:
        return None
    note = note.strip()
    return note or None


async def lock_child_row(db: AsyncSession, child_id: int) -> Child:
    """Load a child with a row lock, refreshing any stale copy in the session."""
    result = await db.execute(
        select(Child)
        .where(Child.id == child_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    child = result.scalar_one_or_none()
    if child is None:
        raise NotFound("Child not found.")
    return child


async def stage_entry(
    db: AsyncSession,
    child_id: int,
    actor_id: int,
    amount_cents: int,
    kind: str,
    note: str | None = None,
    schedule_id: int | None = None,
    interest_at: datetime | None = None,
) -> tuple[Transaction, int]:
    """Add a ledger row and its balance change without committing.

    The caller must hold :func:`familybank.locks.child_lock` for ``child_id``
    and commit or roll back the session.
    """
    if amount_cents <= 0:
        raise ValueError("amount must be positive")
    child = await lock_child_row(db, child_id)
    if kind == KIND_WITHDRAWAL:
        if child.balance_cents < amount_cents:
            raise InsufficientFunds(amount_cents, child.balance_cents)
        child.balance_cents -= amount_cents
    elif kind in (KIND_DEPOSIT, KIND_ALLOWANCE, KIND_INTEREST):
        child.balance_cents += amount_cents
    else:
        raise ValueError(f"unknown transaction kind {kind!r}")

    now = utcnow()
    tx = Transaction(
        child_id=child_id,
        parent_id=actor_id,
        amount_cents=amount_cents,
        kind=kind,
        note=clean_note(note),
        schedule_id=schedule_id,
        created_at=now,
    )
    if kind == KIND_INTEREST:
        child.last_interest_at = interest_at or now
    child.updated_at = now
    db.add(tx)
    db.add(child)
    await db.flush()
    return tx, child.balance_cents


async def _post(db: AsyncSession, child_id: int, *args, **kwargs) -> tuple[Transaction, int]:
    async with child_lock(child_id):
        try:
            tx, balance = await stage_entry(db, child_id, *args, **kwargs)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
    await db.refresh(tx)
    logger.info(
        "Posted %s of %d cents to child %s (balance %d)",
        tx.kind,
        tx.amount_cents,
        child_id,
        balance,
    )
    return tx, balance


async def deposit(
    db: AsyncSession, child_id: int, actor_id: int, amount_cents: int, note: str | None = None
) -> tuple[Transaction, int]:
    return await _post(db, child_id, actor_id, amount_cents, KIND_DEPOSIT, note)


async def withdraw(
    db: AsyncSession, child_id: int, actor_id: int, amount_cents: int, note: str | None = None
) -> tuple[Transaction, int]:
    """Remove money; raises :class:`InsufficientFunds` and leaves the balance alone."""
    return await _post(db, child_id, actor_id, amount_cents, KIND_WITHDRAWAL, note)


async def credit_allowance(
    db: AsyncSession,
    child_id: int,
    actor_id: int,
    amount_cents: int,
    schedule_id: int,
    note: str | None = None,
) -> tuple[Transaction, int]:
    return await _post(
        db, child_id, actor_id, amount_cents, KIND_ALLOWANCE, note, schedule_id=schedule_id
    )


async def credit_interest(
    db: AsyncSession,
    child_id: int,
    actor_id: int,
    amount_cents: int,
    note: str | None,
    at_instant: datetime,
    schedule_id: int | None = None,
) -> tuple[Transaction, int]:
    """Credit interest and record ``at_instant`` as the child's last accrual."""
    return await _post(
        db,
        child_id,
        actor_id,
        amount_cents,
        KIND_INTEREST,
        note,
        schedule_id=schedule_id,
        interest_at=at_instant,
    )


async def list_by_child(db: AsyncSession, child_id: int) -> list[Transaction]:
    """Return all rows for a child, newest first."""
    result = await db.execute(
        select(Transaction)
        .where(Transaction.child_id == child_id)
        .order_by(Transaction.created_at.desc(), Transaction.id.desc())
    )
    return list(result.scalars().all())


async def get_balance(db: AsyncSession, child_id: int) -> int:
    result = await db.execute(select(Child.balance_cents).where(Child.id == child_id))
    balance = result.scalar_one_or_none()
    if balance is None:
        raise NotFound("Child not found.")
    return balance


async def read_ledger(db: AsyncSession, child_id: int) -> tuple[int, list[Transaction]]:
    """Return ``(balance, rows)`` read together under the child's lock.

    Both reads see the same committed state: no posting for the child can
    land between them.
    """
    async with child_lock(child_id):
        balance = await get_balance(db, child_id)
        rows = await list_by_child(db, child_id)
    return balance, rows
