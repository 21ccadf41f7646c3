from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, StrictInt


class CartAddRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    artwork_id: str = Field(alias="artworkId", min_length=1)
    quantity: StrictInt = Field(default=1, ge=1)


class CartUpdateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    item_id: str = Field(alias="itemId", min_length=1)
    quantity: StrictInt = Field(ge=1)


class CartRemoveRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    item_id: str = Field(alias="itemId", min_length=1)


class CartLine(BaseModel):
    id: str
    artwork_id: str
    title: str
    thumbnail_url: Optional[str] = None
    unit_price: float
    quantity: int
    creator_id: Optional[str] = None


class CartSummary(BaseModel):
    id: Optional[str] = None
    items: List[CartLine] = []
    subtotal: float = 0
    count: int = 0


class CartAck(BaseModel):
    ok: bool = True
