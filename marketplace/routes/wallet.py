from fastapi import APIRouter, Depends, status
from sqlmodel import Session

from marketplace.database import get_session
from marketplace.models.user import Profile
from marketplace.schemas.wallet_schemas import WithdrawalRequest
from marketplace.services.wallet_service import (
    available_balance,
    get_balance,
    list_transactions,
    request_withdrawal,
)
from marketplace.utils.token import get_current_user

router = APIRouter()


@router.get("")
def get_wallet(
    session: Session = Depends(get_session),
    current_user: Profile = Depends(get_current_user),
):
    return {
        "balance": get_balance(session, current_user.id),
        "available_balance": available_balance(session, current_user.id),
        "transactions": list_transactions(session, current_user.id),
    }


@router.post("/withdrawals", status_code=status.HTTP_201_CREATED)
def create_withdrawal(
    data: WithdrawalRequest,
    session: Session = Depends(get_session),
    current_user: Profile = Depends(get_current_user),
):
    txn = request_withdrawal(
        session,
        user_id=current_user.id,
        amount=data.amount,
        bank_account=data.bank_account,
        bank_name=data.bank_name,
        account_name=data.account_name,
        notes=data.notes,
    )
    return {
        "success": True,
        "data": {
            "id": txn.id,
            "reference": txn.reference,
            "amount": txn.amount,
            "status": txn.status,
        },
    }
