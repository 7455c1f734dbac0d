"""Typed rows for results whose shape is fixed by this package."""

from typing import Optional

from pydantic import BaseModel, Field


class LegalityEntry(BaseModel):
    """One (card, format) legality from the card_legalities relation."""

    uuid: str
    format: str
    status: str


class PricePoint(BaseModel):
    """A single flattened price."""

    uuid: str
    source: Optional[str] = None
    provider: str
    price_type: Optional[str] = None
    finish: str
    date: str
    price: float = Field(gt=0)
    currency: Optional[str] = None


class PriceTrend(BaseModel):
    """Aggregate of one card's price history for a provider and finish."""

    uuid: str
    provider: str
    finish: str
    price_type: Optional[str] = None
    min_price: float
    max_price: float
    avg_price: float
    first_date: str
    last_date: str
    data_points: int


class DatasetMeta(BaseModel):
    """Contents of Meta.json."""

    version: str
    date: Optional[str] = None
