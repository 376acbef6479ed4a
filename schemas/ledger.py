from typing import Optional

from pydantic import BaseModel, Field

REF_CODE_LENGTH = 8


class UserRecord(BaseModel):
    balance: int = Field(0, ge=0)
    last_earn: int = Field(0, ge=0)
    referrals: int = Field(0, ge=0)
    ref_code: str = Field(..., min_length=REF_CODE_LENGTH, max_length=REF_CODE_LENGTH)
    referred_by: Optional[str] = None
