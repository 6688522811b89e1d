"""Collaborator interfaces for tier price persistence, lookup and indexing."""

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Iterable, Mapping, Optional, Protocol

StorageRow = Mapping[str, Any]


@dataclass(frozen=True)
class PriceRowSkeleton:
    """Storage-shaped price for one product entity, not yet persisted."""

    link_field_value: int
    all_groups: bool
    customer_group_id: int
    qty: Decimal
    value: Decimal
    percentage_value: Optional[Decimal]
    price_list_name: Optional[str]


@dataclass(frozen=True)
class PersistedPriceRow:
    """Persisted price row keyed by its synthetic ``row_id``."""

    row_id: int
    link_field_value: int
    all_groups: bool
    customer_group_id: int
    qty: Decimal
    value: Decimal
    percentage_value: Optional[Decimal]
    price_list_name: Optional[str]


class TierPriceRepository(Protocol):
    """Persistence operations required by the tier price storage."""

    @property
    def link_field_name(self) -> str:
        """Column correlating a row to its product entity."""
        ...

    def fetch(self, ids: Iterable[int]) -> list[StorageRow]:
        ...

    def update(self, rows: list[StorageRow]) -> None:
        ...

    def replace(self, rows: list[StorageRow], affected_ids: list[int]) -> None:
        ...

    def delete(self, row_ids: list[int]) -> None:
        ...


class ProductIdLocator(Protocol):
    """Resolves SKUs to the product identifiers sharing them."""

    def resolve(self, skus: Iterable[str]) -> dict[str, set[int]]:
        """Return an entry for every requested SKU, empty when unknown."""
        ...


class PriceIndexer(Protocol):
    """Downstream price index invalidation."""

    def reindex_list(self, ids: list[int]) -> None:
        ...
