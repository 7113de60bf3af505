"""Pydantic models for Jupiter Price API v3 responses."""

from decimal import Decimal

from pydantic import BaseModel


class JupiterPrice(BaseModel):
    """USD quote for a single token."""

    id: str  # mint address
    usd_price: Decimal | None = None
    decimals: int | None = None
    block_id: int | None = None  # slot the quote was derived at
    price_change_24h: float | None = None
