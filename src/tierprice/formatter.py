"""Expand SKU-addressed price records into per-product skeletons."""

import logging
from typing import Iterable

from tierprice.exceptions import UnresolvedSkuError
from tierprice.factory import build_skeleton
from tierprice.lookup import SkuIdLookup
from tierprice.models import PriceRecord
from tierprice.repositories.base import PriceRowSkeleton

logger = logging.getLogger(__name__)


class BatchFormatter:
    """Fan each record out to every product identifier sharing its SKU."""

    def __init__(self, lookup: SkuIdLookup) -> None:
        self.lookup = lookup

    def expand(self, records: Iterable[PriceRecord]) -> list[PriceRowSkeleton]:
        """
        Build skeletons in record order, then identifier order.

        Raises:
            UnresolvedSkuError: a record's SKU maps to no identifier.
        """
        skeletons: list[PriceRowSkeleton] = []
        for record in records:
            ids = self.lookup.ids_for(record.sku)
            if not ids:
                logger.error("No product identifiers for accepted SKU %s", record.sku)
                raise UnresolvedSkuError(record.sku)
            skeletons.extend(build_skeleton(record, product_id) for product_id in ids)
        return skeletons
