from typing import Optional

from pydantic import BaseModel, ConfigDict, computed_field

from familybank.interest import format_rate
from .common import UTCDateTime


class ChildCreate(BaseModel):
    first_name: str
    password: str
    interest_rate_bps: int = 0


class ChildRead(BaseModel):
    id: int
    family_id: int
    first_name: str
    balance_cents: int
    interest_rate_bps: int
    last_interest_at: Optional[UTCDateTime] = None
    created_at: UTCDateTime
    updated_at: UTCDateTime

    model_config = ConfigDict(from_attributes=True)

    @computed_field
    @property
    def interest_rate_display(self) -> str:
        return format_rate(self.interest_rate_bps)
