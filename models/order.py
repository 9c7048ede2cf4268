"""
Order history schemas consumed by the auto-pick engine and score recalculation.
"""

from pydantic import Field
from typing import Optional
from datetime import datetime

from models.base import BaseSchema


ORDER_STATUS_DONE = "done"


class OrderRecord(BaseSchema):
    """A completed order header."""

    id: int
    user_id: int
    status: str
    total: float = 0
    created_at: datetime


class HistoryItem(BaseSchema):
    """One purchased line with the product's category and volume joined in."""

    order_id: int = Field(..., description="Order the line belongs to")
    product_id: int = Field(..., description="Purchased product")
    quantity: int = Field(..., description="Purchased units")
    category: Optional[str] = Field(None, description="Product category label")
    volume: Optional[float] = Field(None, description="Product volume")
    user_id: Optional[int] = Field(None, description="Buyer, used by score recalculation")
