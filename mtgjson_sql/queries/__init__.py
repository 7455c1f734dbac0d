"""
Domain accessors built on the Connection and SqlBuilder.
"""

from .cards import CardQuery
from .legalities import LegalityQuery
from .prices import PriceQuery
from .sets import SetQuery

__all__ = ["CardQuery", "LegalityQuery", "PriceQuery", "SetQuery"]
