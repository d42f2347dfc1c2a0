"""Database models used by the family bank.

The models are defined with SQLModel (built on SQLAlchemy and Pydantic)
and represent families, parents, children, the ledger and the two kinds
of recurring schedule.  All timestamps are naive UTC and are stored in plain
``DateTime`` columns without a timezone.
"""

from typing import ClassVar, Optional
from datetime import datetime, timezone
from sqlmodel import SQLModel, Field
from sqlalchemy import BigInteger, DateTime, UniqueConstraint

STATUS_ACTIVE = "active"
STATUS_PAUSED = "paused"

KIND_DEPOSIT = "deposit"
KIND_WITHDRAWAL = "withdrawal"
KIND_ALLOWANCE = "allowance"
KIND_INTEREST = "interest"

CREDIT_KINDS = (KIND_DEPOSIT, KIND_ALLOWANCE, KIND_INTEREST)


def utcnow() -> datetime:
    """Current time as a naive UTC datetime, the form stored in the database."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Family(SQLModel, table=True):
    """Tenant grouping parents and their children."""

    __tablename__ = "families"

    id: Optional[int] = Field(default=None, primary_key=True)
    slug: str = Field(unique=True, index=True)
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime())


class Parent(SQLModel, table=True):
    """Adult member of a family; the actor behind every ledger row."""

    __tablename__ = "parents"

    id: Optional[int] = Field(default=None, primary_key=True)
    family_id: int = Field(foreign_key="families.id", ondelete="CASCADE", index=True)
    name: str
    email: str = Field(unique=True, index=True)
    password_hash: str
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime())


class Child(SQLModel, table=True):
    """Child account holder with a running balance."""

    __tablename__ = "children"
    __table_args__ = (UniqueConstraint("family_id", "first_name"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    family_id: int = Field(foreign_key="families.id", ondelete="CASCADE", index=True)
    first_name: str
    password_hash: str
    balance_cents: int = Field(default=0, sa_type=BigInteger)
    interest_rate_bps: int = 0  # annual rate, 0..10000
    # slot of the latest accrual
    last_interest_at: Optional[datetime] = Field(default=None, sa_type=DateTime())
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime())
    updated_at: datetime = Field(default_factory=utcnow, sa_type=DateTime())


class Transaction(SQLModel, table=True):
    """Append-only ledger row; the sign of ``amount_cents`` comes from ``kind``."""

    __tablename__ = "transactions"

    id: Optional[int] = Field(default=None, primary_key=True)
    child_id: int = Field(foreign_key="children.id", ondelete="CASCADE", index=True)
    parent_id: int = Field(foreign_key="parents.id")
    amount_cents: int = Field(sa_type=BigInteger)
    kind: str  # deposit, withdrawal, allowance, interest
    note: Optional[str] = None
    # Links allowance and interest rows to the schedule that produced them.
    schedule_id: Optional[int] = Field(default=None, index=True)
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime())

    @property
    def signed_amount_cents(self) -> int:
        if self.kind in CREDIT_KINDS:
            return self.amount_cents
        return -self.amount_cents


class ScheduleBase(SQLModel):
    """Columns shared by allowance and interest schedules."""

    child_id: int = Field(
        foreign_key="children.id", ondelete="CASCADE", unique=True, index=True
    )
    parent_id: int = Field(foreign_key="parents.id")
    frequency: str  # weekly, biweekly, monthly
    day_of_week: Optional[int] = None  # 0 = Sunday .. 6 = Saturday
    day_of_month: Optional[int] = None  # 1..31, clamped to month length
    status: str = STATUS_ACTIVE
    next_run_at: Optional[datetime] = Field(default=None, index=True, sa_type=DateTime())
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime())
    updated_at: datetime = Field(default_factory=utcnow, sa_type=DateTime())


class AllowanceSchedule(ScheduleBase, table=True):
    """Recurring fixed-amount credit."""

    __tablename__ = "allowance_schedules"

    ledger_kind: ClassVar[str] = KIND_ALLOWANCE
    label: ClassVar[str] = "allowance"

    id: Optional[int] = Field(default=None, primary_key=True)
    amount_cents: int = Field(sa_type=BigInteger)
    note: Optional[str] = None


class InterestSchedule(ScheduleBase, table=True):
    """Recurring interest accrual; the rate lives on the child."""

    __tablename__ = "interest_schedules"

    ledger_kind: ClassVar[str] = KIND_INTEREST
    label: ClassVar[str] = "interest schedule"

    id: Optional[int] = Field(default=None, primary_key=True)
