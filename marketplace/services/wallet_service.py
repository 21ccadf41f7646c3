import logging
import time
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import case, func
from sqlmodel import Session, select

from marketplace.config import settings
from marketplace.errors import ValidationFailed
from marketplace.models.user import Profile
from marketplace.models.wallet import (
    INFLOW_TYPES,
    OUTFLOW_TYPES,
    TransactionStatus,
    TransactionType,
    WalletTransaction,
)
from marketplace.services.cart_service import store_errors

logger = logging.getLogger(__name__)


def record_credit(
    session: Session,
    *,
    user_id: str,
    amount: float,
    description: str,
    reference: str,
    meta: Optional[Dict[str, Any]] = None,
) -> WalletTransaction:
    """Append a completed credit to a user's ledger."""
    txn = WalletTransaction(
        user_id=user_id,
        amount=round(float(amount), 2),
        transaction_type=TransactionType.CREDIT,
        status=TransactionStatus.COMPLETED,
        description=description,
        reference=reference,
        meta=meta or {},
    )
    session.add(txn)
    session.flush()
    logger.info(f"Wallet credit {txn.amount} for user {user_id} ({reference})")
    return txn


def get_balance(session: Session, user_id: str) -> Dict[str, Any]:
    """
    Derive the balance from completed ledger rows.

    Pending and failed rows are counted in ``total_transactions`` only.
    """
    completed = WalletTransaction.status == TransactionStatus.COMPLETED

    credits = func.coalesce(func.sum(case(
        (completed & WalletTransaction.transaction_type.in_(INFLOW_TYPES), WalletTransaction.amount),
        else_=0,
    )), 0)
    debits = func.coalesce(func.sum(case(
        (completed & WalletTransaction.transaction_type.in_(OUTFLOW_TYPES), WalletTransaction.amount),
        else_=0,
    )), 0)

    total_credits, total_debits, total = session.exec(
        select(credits, debits, func.count(WalletTransaction.id))
        .where(WalletTransaction.user_id == user_id)
    ).one()

    total_credits = float(total_credits or 0)
    total_debits = float(total_debits or 0)

    return {
        "balance": round(total_credits - total_debits, 2),
        "total_credits": round(total_credits, 2),
        "total_debits": round(total_debits, 2),
        "total_transactions": total,
    }


def list_transactions(session: Session, user_id: str, limit: int = 50) -> List[WalletTransaction]:
    return session.exec(
        select(WalletTransaction)
        .where(WalletTransaction.user_id == user_id)
        .order_by(WalletTransaction.created_at.desc())
        .limit(limit)
    ).all()


def pending_withdrawals(session: Session, user_id: str) -> float:
    total = session.exec(
        select(func.coalesce(func.sum(WalletTransaction.amount), 0)).where(
            WalletTransaction.user_id == user_id,
            WalletTransaction.transaction_type == TransactionType.WITHDRAWAL,
            WalletTransaction.status == TransactionStatus.PENDING,
        )
    ).one()
    return round(float(total or 0), 2)


def available_balance(session: Session, user_id: str) -> float:
    """Balance less withdrawals still awaiting payout."""
    balance = get_balance(session, user_id)["balance"]
    return round(balance - pending_withdrawals(session, user_id), 2)


def withdrawal_reference(user_id: str) -> str:
    return f"WD_{int(time.time() * 1000)}_{user_id[:8]}"


def request_withdrawal(
    session: Session,
    *,
    user_id: str,
    amount: float,
    bank_account: str,
    bank_name: str,
    account_name: str,
    notes: Optional[str] = None,
) -> WalletTransaction:
    """
    Queue a payout of ``amount`` to the creator's bank account.

    The request is recorded as a pending ``withdrawal`` row; it only counts
    against the balance once completed, but already reduces what can be
    requested next.
    """
    amount = round(float(amount), 2)
    if amount <= 0:
        raise ValidationFailed("Please enter a valid amount", field="amount")

    if amount < settings.min_withdrawal:
        raise ValidationFailed(
            f"Minimum withdrawal amount is {format_naira(settings.min_withdrawal)}",
            field="amount",
        )

    bank = {
        "bank_account": (bank_account or "").strip(),
        "bank_name": (bank_name or "").strip(),
        "account_name": (account_name or "").strip(),
    }
    if not all(bank.values()):
        raise ValidationFailed("Please fill in all bank details")

    with store_errors(session, "Failed to submit withdrawal request"):
        # serializes concurrent requests from one user where the store supports it
        session.exec(select(Profile.id).where(Profile.id == user_id).with_for_update()).first()

        available = available_balance(session, user_id)
        if amount > available:
            session.rollback()
            raise ValidationFailed(
                f"Insufficient balance. Available: {format_naira(available)}",
                field="amount",
            )

        txn = WalletTransaction(
            user_id=user_id,
            amount=amount,
            transaction_type=TransactionType.WITHDRAWAL,
            status=TransactionStatus.PENDING,
            description="Withdrawal request",
            reference=withdrawal_reference(user_id),
            meta={
                **bank,
                "notes": notes or None,
                "requested_at": datetime.utcnow().isoformat(),
            },
        )
        session.add(txn)
        session.commit()
        session.refresh(txn)

    logger.info(f"Withdrawal {txn.reference} of {amount} requested by user {user_id}")
    return txn


def format_naira(amount: float) -> str:
    return f"₦{amount:,.2f}"
