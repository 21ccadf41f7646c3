from typing import Optional

from pydantic import BaseModel, Field


class WithdrawalRequest(BaseModel):
    amount: float = Field(gt=0)
    bank_account: str = Field(min_length=1)
    bank_name: str = Field(min_length=1)
    account_name: str = Field(min_length=1)
    notes: Optional[str] = None
