"""Pydantic data models for tier price records."""

from decimal import Decimal
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, model_validator

ALL_GROUPS_ID = 32000


class PriceRecord(BaseModel):
    """SKU-addressed tier price as exchanged with callers."""

    sku: str = Field(..., description="Product SKU")
    customer_group_id: int = Field(
        default=0,
        description=f"Customer group id ({ALL_GROUPS_ID} means all groups)",
    )
    all_groups: bool = Field(default=False, description="Price applies to every group")
    qty: Decimal = Field(..., description="Quantity break")
    value: Decimal = Field(
        default=Decimal("0"),
        description="Fixed price; 0 means unset (use percentage)",
    )
    percentage_value: Optional[Decimal] = Field(
        default=None,
        description="Discount percentage off the base price",
    )
    price_list_name: Optional[str] = Field(
        default=None,
        description="Currency/price-list scope (ISO 4217 code)",
    )

    @model_validator(mode="after")
    def normalize_all_groups(self) -> "PriceRecord":
        """The all-groups sentinel id always implies ``all_groups``."""
        if self.customer_group_id == ALL_GROUPS_ID:
            self.all_groups = True
        return self

    @property
    def price_type(self) -> Literal["fixed", "discount"]:
        # Percentage wins when both are present.
        return "discount" if self.percentage_value is not None else "fixed"

    def dimension_key(self) -> tuple:
        """Key identifying the tier this record prices, per SKU."""
        group = 0 if self.all_groups else self.customer_group_id
        return (
            self.sku,
            self.all_groups,
            group,
            self.qty,
            (self.price_list_name or "").upper(),
        )


class RejectedRecord(BaseModel):
    """Record rejected by validation, returned to the caller."""

    record: PriceRecord
    reason_code: str
    message: str


class SkuListRequest(BaseModel):
    """Request payload for the tier price information endpoint."""

    skus: List[str] = Field(..., min_length=1)


class PriceBatchRequest(BaseModel):
    """Request payload for update/replace/delete endpoints."""

    prices: List[PriceRecord] = Field(default_factory=list)


class PriceBatchResponse(BaseModel):
    """Rejected records of a write operation; accepted records are implicit."""

    rejected: List[RejectedRecord]
    rejected_count: int
