"""Database session and repository utilities."""

from spiceboard.db.session import (
    STORE_ERRORS,
    dispose_engine,
    get_db_session,
    get_engine,
    get_sessionmaker,
    session_context,
)
from spiceboard.db.repositories import (
    AuctionRecordUpsert,
    PriceChangeInsert,
    PriceChangeRow,
    ProductPriceUpdate,
    fetch_auction_records,
    fetch_price_changes,
    fetch_products,
    fetch_products_by_ids,
    insert_price_changes,
    update_product_prices,
    upsert_auction_records,
)

__all__ = [
    "STORE_ERRORS",
    "dispose_engine",
    "get_db_session",
    "get_engine",
    "get_sessionmaker",
    "session_context",
    "AuctionRecordUpsert",
    "PriceChangeInsert",
    "PriceChangeRow",
    "ProductPriceUpdate",
    "fetch_auction_records",
    "fetch_price_changes",
    "fetch_products",
    "fetch_products_by_ids",
    "insert_price_changes",
    "update_product_prices",
    "upsert_auction_records",
]
