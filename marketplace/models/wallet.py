from datetime import datetime
from typing import Optional
from uuid import uuid4

from sqlmodel import SQLModel, Field
from sqlalchemy import Column, JSON


class TransactionType:
    CREDIT = "credit"
    DEBIT = "debit"
    WITHDRAWAL = "withdrawal"
    REFUND = "refund"


class TransactionStatus:
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


# types that add to / take from the balance
INFLOW_TYPES = (TransactionType.CREDIT, TransactionType.REFUND)
OUTFLOW_TYPES = (TransactionType.DEBIT, TransactionType.WITHDRAWAL)


class WalletTransaction(SQLModel, table=True):
    """
    Append-only ledger row. Balances are always derived from these rows.
    """

    __tablename__ = "wallet_transactions"

    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True)
    user_id: str = Field(foreign_key="profiles.id", index=True)

    amount: float
    transaction_type: str = Field(index=True)
    status: str = Field(default=TransactionStatus.PENDING)

    description: Optional[str] = None
    reference: Optional[str] = Field(default=None, index=True)
    meta: Optional[dict] = Field(default=None, sa_column=Column("metadata", JSON))

    created_at: datetime = Field(default_factory=datetime.utcnow)
