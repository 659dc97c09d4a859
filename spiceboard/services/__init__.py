"""Service layer."""

from spiceboard.services.auction_service import AuctionService
from spiceboard.services.price_service import PriceService

__all__ = ["AuctionService", "PriceService"]
