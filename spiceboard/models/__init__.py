"""SQLAlchemy ORM models."""

from spiceboard.models.auction_record import AuctionRecord
from spiceboard.models.price_change import PriceChange
from spiceboard.models.product import Product

__all__ = ["AuctionRecord", "PriceChange", "Product"]
