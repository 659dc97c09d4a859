"""Request bodies for the JSON API."""

from typing import Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class UpdatePriceRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(min_length=1)
    new_price: float = Field(
        strict=True,
        allow_inf_nan=False,
        validation_alias=AliasChoices("new_price", "newPrice", "priceINR"),
    )


class BulkUpdatePricesRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    product_ids: list[str] = Field(
        min_length=1,
        validation_alias=AliasChoices("product_ids", "productIds"),
    )
    mode: Literal["add", "subtract"]
    amount: float = Field(strict=True, gt=0, allow_inf_nan=False)


class BackfillRequest(BaseModel):
    start_page: int | None = Field(default=None, ge=1)
    end_page: int | None = Field(default=None, ge=1)
    force: bool = False
