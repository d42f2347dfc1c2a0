"""Schemas for allowance and interest schedules.

``frequency`` is accepted as a plain string so an unknown value is reported
as ``invalid_frequency`` by the registry rather than as a malformed body.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict

from .common import UTCDateTime


class DaySpec(BaseModel):
    frequency: str
    day_of_week: Optional[int] = None
    day_of_month: Optional[int] = None


class AllowanceScheduleCreate(DaySpec):
    child_id: int
    amount_cents: int
    note: Optional[str] = None


class ChildAllowanceRequest(DaySpec):
    amount_cents: int
    note: Optional[str] = None


class AllowanceScheduleUpdate(BaseModel):
    amount_cents: Optional[int] = None
    frequency: Optional[str] = None
    day_of_week: Optional[int] = None
    day_of_month: Optional[int] = None
    note: Optional[str] = None


class ScheduleRead(BaseModel):
    id: int
    child_id: int
    parent_id: int
    frequency: str
    day_of_week: Optional[int] = None
    day_of_month: Optional[int] = None
    status: str
    next_run_at: Optional[UTCDateTime] = None
    created_at: UTCDateTime
    updated_at: UTCDateTime

    model_config = ConfigDict(from_attributes=True)


class AllowanceScheduleRead(ScheduleRead):
    amount_cents: int
    note: Optional[str] = None
    child_first_name: Optional[str] = None


class InterestScheduleRead(ScheduleRead):
    pass


class InterestScheduleRequest(DaySpec):
    pass


class SetInterestRequest(BaseModel):
    interest_rate_bps: int
    frequency: Optional[str] = None
    day_of_week: Optional[int] = None
    day_of_month: Optional[int] = None


class SetInterestResponse(BaseModel):
    interest_rate_bps: int
    interest_rate_display: str
    schedule: Optional[InterestScheduleRead] = None


class UpcomingAllowance(BaseModel):
    schedule_id: int
    amount_cents: int
    next_date: UTCDateTime
    note: Optional[str] = None


class UpcomingAllowancesResponse(BaseModel):
    allowances: list[UpcomingAllowance]
