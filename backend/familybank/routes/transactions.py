import logging
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession


"""Endpoints for recording and viewing ledger transactions."""

from familybank import ledger
from familybank.auth import get_current_identity
from familybank.database import get_session
from familybank.interest import format_rate
from familybank.models import InterestSchedule, STATUS_ACTIVE
from familybank.schedules import get_schedule_by_child
from familybank.schemas import (
    BalanceResponse,
    LedgerResponse,
    MoneyRequest,
    MoneyResponse,
    TransactionRead,
)
from familybank.validation import validate_amount, validate_note
from .deps import load_child

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/children", tags=["transactions"])


@router.post("/{child_id}/deposit", response_model=MoneyResponse)
async def deposit(
    child_id: int,
    data: MoneyRequest,
    db: AsyncSession = Depends(get_session),
    identity=Depends(get_current_identity),
):
    """Add money to a child's balance."""
    await load_child(db, identity, child_id, mutate=True)
    amount = validate_amount(data.amount_cents)
    note = validate_note(data.note)
    _, parent = identity
    tx, balance = await ledger.deposit(db, child_id, parent.id, amount, note)
    return MoneyResponse(
        transaction=TransactionRead.model_validate(tx), new_balance_cents=balance
    )


@router.post("/{child_id}/withdraw", response_model=MoneyResponse)
async def withdraw(
    child_id: int,
    data: MoneyRequest,
    db: AsyncSession = Depends(get_session),
    identity=Depends(get_current_identity),
):
    """Remove money; refused when it would take the balance below zero."""
    await load_child(db, identity, child_id, mutate=True)
    amount = validate_amount(data.amount_cents)
    note = validate_note(data.note)
    _, parent = identity
    tx, balance = await ledger.withdraw(db, child_id, parent.id, amount, note)
    return MoneyResponse(
        transaction=TransactionRead.model_validate(tx), new_balance_cents=balance
    )


@router.get("/{child_id}/balance", response_model=BalanceResponse)
async def read_balance(
    child_id: int,
    db: AsyncSession = Depends(get_session),
    identity=Depends(get_current_identity),
):
    child = await load_child(db, identity, child_id)
    schedule = await get_schedule_by_child(db, InterestSchedule, child_id)
    next_interest_at = None
    if schedule is not None and schedule.status == STATUS_ACTIVE and child.interest_rate_bps > 0:
        next_interest_at = schedule.next_run_at
    return BalanceResponse(
        child_id=child.id,
        first_name=child.first_name,
        balance_cents=child.balance_cents,
        interest_rate_bps=child.interest_rate_bps,
        interest_rate_display=format_rate(child.interest_rate_bps),
        next_interest_at=next_interest_at,
    )


@router.get("/{child_id}/transactions", response_model=LedgerResponse)
async def list_transactions(
    child_id: int,
    db: AsyncSession = Depends(get_session),
    identity=Depends(get_current_identity),
):
    """Return the child's ledger, newest first, with the current balance."""
    await load_child(db, identity, child_id)
    balance, rows = await ledger.read_ledger(db, child_id)
    return LedgerResponse(
        balance_cents=balance,
        transactions=[TransactionRead.model_validate(tx) for tx in rows],
    )
