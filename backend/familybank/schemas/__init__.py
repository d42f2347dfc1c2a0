"""Convenience imports for all schema classes used by the API."""

from .common import UTCDateTime
from .child import ChildCreate, ChildRead
from .user import (
    RegisterRequest,
    ParentRead,
    LoginRequest,
    ChildLoginRequest,
    TokenResponse,
    FamilyRead,
)
from .transaction import (
    MoneyRequest,
    TransactionRead,
    MoneyResponse,
    BalanceResponse,
    LedgerResponse,
)
from .schedule import (
    AllowanceScheduleCreate,
    AllowanceScheduleUpdate,
    AllowanceScheduleRead,
    ChildAllowanceRequest,
    InterestScheduleRead,
    InterestScheduleRequest,
    SetInterestRequest,
    SetInterestResponse,
    UpcomingAllowance,
    UpcomingAllowancesResponse,
)

__all__ = [
    "UTCDateTime",
    "ChildCreate",
    "ChildRead",
    "RegisterRequest",
    "ParentRead",
    "LoginRequest",
    "ChildLoginRequest",
    "TokenResponse",
    "FamilyRead",
    "MoneyRequest",
    "TransactionRead",
    "MoneyResponse",
    "BalanceResponse",
    "LedgerResponse",
    "AllowanceScheduleCreate",
    "AllowanceScheduleUpdate",
    "AllowanceScheduleRead",
    "ChildAllowanceRequest",
    "InterestScheduleRead",
    "InterestScheduleRequest",
    "SetInterestRequest",
    "SetInterestResponse",
    "UpcomingAllowance",
    "UpcomingAllowancesResponse",
]
