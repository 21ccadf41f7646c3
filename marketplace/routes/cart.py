from fastapi import APIRouter, Depends
from sqlmodel import Session

from marketplace.database import get_session
from marketplace.models.user import Profile
from marketplace.schemas.cart_schemas import (
    CartAck,
    CartAddRequest,
    CartRemoveRequest,
    CartSummary,
    CartUpdateRequest,
)
from marketplace.services import cart_service
from marketplace.utils.token import get_current_user  # JWT dependency

router = APIRouter()


# View Cart

@router.get("", response_model=CartSummary)
def get_cart(
    session: Session = Depends(get_session),
    current_user: Profile = Depends(get_current_user),
):
    return cart_service.get_cart_summary(session, current_user.id)


# Add to Cart

@router.post("", response_model=CartSummary)
def add_to_cart(
    data: CartAddRequest,
    session: Session = Depends(get_session),
    current_user: Profile = Depends(get_current_user),
):
    cart = cart_service.add_item(session, current_user.id, data.artwork_id, data.quantity)
    with cart_service.store_errors(session, "Failed to load cart"):
        return cart_service.cart_summary_for(session, cart.id)


# Update quantity

@router.patch("", response_model=CartAck)
def update_cart_item(
    data: CartUpdateRequest,
    session: Session = Depends(get_session),
    current_user: Profile = Depends(get_current_user),
):
    cart_service.update_item_quantity(session, current_user.id, data.item_id, data.quantity)
    return CartAck()


# Remove item

@router.delete("", response_model=CartAck)
def remove_cart_item(
    data: CartRemoveRequest,
    session: Session = Depends(get_session),
    current_user: Profile = Depends(get_current_user),
):
    cart_service.remove_item(session, current_user.id, data.item_id)
    return CartAck()
