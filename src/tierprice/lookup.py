"""SKU <-> product identifier lookups built from a locator."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

from tierprice.repositories.base import ProductIdLocator


@dataclass(frozen=True)
class SkuIdLookup:
    """Bidirectional SKU/identifier map for one operation.

    Identifiers of a SKU are kept sorted ascending so skeleton order and
    matcher candidate order do not depend on the locator's set ordering.
    """

    ids_by_sku: dict[str, tuple[int, ...]] = field(default_factory=dict)
    sku_by_id: dict[int, str] = field(default_factory=dict)

    @classmethod
    def resolve(cls, locator: ProductIdLocator, skus: Iterable[str]) -> SkuIdLookup:
        requested = list(dict.fromkeys(skus))
        if not requested:
            return cls()

        resolved = locator.resolve(requested)
        ids_by_sku: dict[str, tuple[int, ...]] = {}
        sku_by_id: dict[int, str] = {}
        for sku in requested:
            ids = tuple(sorted(resolved.get(sku, ())))
            ids_by_sku[sku] = ids
            for product_id in ids:
                sku_by_id[product_id] = sku
        return cls(ids_by_sku=ids_by_sku, sku_by_id=sku_by_id)

    def ids_for(self, sku: str) -> tuple[int, ...]:
        return self.ids_by_sku.get(sku, ())

    def sku_for(self, product_id: int) -> str:
        return self.sku_by_id[product_id]

    def restrict(self, skus: Iterable[str]) -> SkuIdLookup:
        """Sub-lookup over ``skus`` only, reusing the identifiers already resolved."""
        ids_by_sku = {sku: self.ids_for(sku) for sku in dict.fromkeys(skus)}
        sku_by_id = {pid: sku for sku, ids in ids_by_sku.items() for pid in ids}
        return SkuIdLookup(ids_by_sku=ids_by_sku, sku_by_id=sku_by_id)

    @property
    def affected_ids(self) -> list[int]:
        """All resolved identifiers, in SKU order."""
        return list(self.sku_by_id)
