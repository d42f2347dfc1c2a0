"""Ledger request and response models."""

from typing import Optional
from pydantic import BaseModel, ConfigDict

from .common import UTCDateTime


class MoneyRequest(BaseModel):
    """Body of a deposit or withdrawal; amounts are whole cents."""

    amount_cents: int
    note: Optional[str] = None


class TransactionRead(BaseModel):
    id: int
    child_id: int
    parent_id: int
    amount_cents: int
    kind: str
    note: Optional[str] = None
    schedule_id: Optional[int] = None
    created_at: UTCDateTime

    model_config = ConfigDict(from_attributes=True)


class MoneyResponse(BaseModel):
    transaction: TransactionRead
    new_balance_cents: int


class BalanceResponse(BaseModel):
    child_id: int
    first_name: str
    balance_cents: int
    interest_rate_bps: int
    interest_rate_display: str
    next_interest_at: Optional[UTCDateTime] = None


class LedgerResponse(BaseModel):
    balance_cents: int
    transactions: list[TransactionRead]
