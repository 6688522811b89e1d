"""Match incoming price skeletons against persisted rows."""

from typing import Iterable, Optional

from tierprice.repositories.base import PersistedPriceRow, PriceRowSkeleton


def is_correct_price_value(existing: PersistedPriceRow, incoming: PriceRowSkeleton) -> bool:
    """Non-zero fixed value or non-null percentage must agree with the incoming one."""
    return (existing.value != 0 and existing.value == incoming.value) or (
        existing.percentage_value is not None
        and existing.percentage_value == incoming.percentage_value
    )


def match_price_row(
    skeleton: PriceRowSkeleton, candidates: Iterable[PersistedPriceRow]
) -> Optional[int]:
    """
    Return the ``row_id`` of the first candidate denoting ``skeleton``.

    First match wins; candidate order decides ties. ``None`` means no
    persisted row corresponds (a new row).
    """
    for existing in candidates:
        if (
            existing.all_groups == skeleton.all_groups
            and existing.customer_group_id == skeleton.customer_group_id
            and existing.qty == skeleton.qty
            and is_correct_price_value(existing, skeleton)
            and existing.link_field_value == skeleton.link_field_value
        ):
            return existing.row_id
    return None
