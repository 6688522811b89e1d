"""Conversions between price records, skeletons and storage rows."""

from decimal import Decimal
from typing import Any, Optional

from tierprice.models import PriceRecord
from tierprice.repositories.base import PersistedPriceRow, PriceRowSkeleton, StorageRow

ROW_ID_COLUMN = "value_id"


def to_decimal(value: Any) -> Decimal:
    """Normalize a storage value (str, int, float, Decimal) to Decimal."""
    if isinstance(value, Decimal):
        return value
    if value is None:
        return Decimal("0")
    return Decimal(str(value))


def _optional_decimal(value: Any) -> Optional[Decimal]:
    return None if value is None else to_decimal(value)


def build_skeleton(record: PriceRecord, product_id: int) -> PriceRowSkeleton:
    """Build the storage skeleton of ``record`` for one product entity."""
    is_discount = record.price_type == "discount"
    return PriceRowSkeleton(
        link_field_value=product_id,
        all_groups=record.all_groups,
        customer_group_id=0 if record.all_groups else record.customer_group_id,
        qty=record.qty,
        value=Decimal("0") if is_discount else record.value,
        percentage_value=record.percentage_value if is_discount else None,
        price_list_name=record.price_list_name.upper() if record.price_list_name else None,
    )


def decode_row(raw: StorageRow, link_field: str) -> PersistedPriceRow:
    """Decode a storage row using the repository's link column."""
    return PersistedPriceRow(
        row_id=int(raw[ROW_ID_COLUMN]),
        link_field_value=int(raw[link_field]),
        all_groups=bool(raw["all_groups"]),
        customer_group_id=int(raw["customer_group_id"]),
        qty=to_decimal(raw["qty"]),
        value=to_decimal(raw["value"]),
        percentage_value=_optional_decimal(raw.get("percentage_value")),
        price_list_name=raw.get("price_list"),
    )


def encode_skeleton(skeleton: PriceRowSkeleton, link_field: str) -> dict[str, Any]:
    """Encode a skeleton as a storage row without ``value_id``."""
    return {
        link_field: skeleton.link_field_value,
        "all_groups": skeleton.all_groups,
        "customer_group_id": skeleton.customer_group_id,
        "qty": skeleton.qty,
        "value": skeleton.value,
        "percentage_value": skeleton.percentage_value,
        "price_list": skeleton.price_list_name,
    }


def row_to_record(row: PersistedPriceRow, sku: str) -> PriceRecord:
    """Turn a persisted row back into a SKU-addressed record."""
    return PriceRecord(
        sku=sku,
        customer_group_id=row.customer_group_id,
        all_groups=row.all_groups,
        qty=row.qty,
        value=row.value,
        percentage_value=row.percentage_value,
        price_list_name=row.price_list_name,
    )
