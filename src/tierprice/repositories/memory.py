"""In-memory collaborators for tests, the CLI and local API runs."""

from __future__ import annotations

import threading
from pathlib import Path
from typing import Any, Iterable, Optional

from pydantic import BaseModel, Field

from tierprice.factory import ROW_ID_COLUMN, decode_row, encode_skeleton
from tierprice.repositories.base import (
    PriceIndexer,
    PriceRowSkeleton,
    ProductIdLocator,
    StorageRow,
    TierPriceRepository,
)


class CatalogSnapshot(BaseModel):
    """JSON-serializable state of the in-memory catalog."""

    link_field: str = "entity_id"
    products: dict[str, list[int]] = Field(default_factory=dict)
    rows: list[dict[str, Any]] = Field(default_factory=list)

    @classmethod
    def load(cls, path: Path) -> CatalogSnapshot:
        return cls.model_validate_json(path.read_text(encoding="utf-8"))

    def save(self, path: Path) -> None:
        path.write_text(self.model_dump_json(indent=2), encoding="utf-8")


class InMemoryProductIdLocator(ProductIdLocator):
    """Thread-safe SKU -> product id map."""

    def __init__(self, products: Optional[dict[str, Iterable[int]]] = None) -> None:
        self._lock = threading.Lock()
        self._products: dict[str, set[int]] = {}
        for sku, ids in (products or {}).items():
            self.add(sku, *ids)

    def add(self, sku: str, *ids: int) -> None:
        with self._lock:
            self._products.setdefault(sku, set()).update(ids)

    def resolve(self, skus: Iterable[str]) -> dict[str, set[int]]:
        with self._lock:
            return {sku: set(self._products.get(sku, ())) for sku in skus}

    def products(self) -> dict[str, list[int]]:
        with self._lock:
            return {sku: sorted(ids) for sku, ids in self._products.items()}


class InMemoryTierPriceRepository(TierPriceRepository):
    """Thread-safe tier price table; each write is applied under one lock."""

    def __init__(self, link_field: str = "entity_id") -> None:
        self._link_field = link_field
        self._lock = threading.Lock()
        self.reset()

    def reset(self) -> None:
        """Reset all in-memory state (used by tests)."""
        with self._lock:
            self._rows: dict[int, dict[str, Any]] = {}
            self._row_seq = 1

    @property
    def link_field_name(self) -> str:
        return self._link_field

    def seed(self, rows: Iterable[StorageRow]) -> None:
        """Load rows as-is, keeping their ``value_id`` when present."""
        with self._lock:
            for raw in rows:
                row = self._normalize(raw)
                row_id = raw.get(ROW_ID_COLUMN) or self._next_row_id()
                row[ROW_ID_COLUMN] = int(row_id)
                self._rows[row[ROW_ID_COLUMN]] = row
                self._row_seq = max(self._row_seq, row[ROW_ID_COLUMN] + 1)

    def rows(self) -> list[dict[str, Any]]:
        with self._lock:
            return [dict(row) for row in self._rows.values()]

    def fetch(self, ids: Iterable[int]) -> list[StorageRow]:
        wanted = set(ids)
        with self._lock:
            return [
                dict(row)
                for row in self._rows.values()
                if row[self._link_field] in wanted
            ]

    def update(self, rows: list[StorageRow]) -> None:
        normalized = [self._normalize(raw) for raw in rows]
        with self._lock:
            index = {self._key(row): row_id for row_id, row in self._rows.items()}
            for row in normalized:
                row_id = index.get(self._key(row))
                if row_id is None:
                    row_id = self._next_row_id()
                    index[self._key(row)] = row_id
                row[ROW_ID_COLUMN] = row_id
                self._rows[row_id] = row

    def replace(self, rows: list[StorageRow], affected_ids: list[int]) -> None:
        normalized = [self._normalize(raw) for raw in rows]
        affected = set(affected_ids)
        with self._lock:
            kept = {
                row_id: row
                for row_id, row in self._rows.items()
                if row[self._link_field] not in affected
            }
            for row in normalized:
                row[ROW_ID_COLUMN] = self._next_row_id()
                kept[row[ROW_ID_COLUMN]] = row
            self._rows = kept

    def delete(self, row_ids: list[int]) -> None:
        with self._lock:
            for row_id in row_ids:
                self._rows.pop(row_id, None)

    def _next_row_id(self) -> int:
        row_id = self._row_seq
        self._row_seq += 1
        return row_id

    def _normalize(self, raw: StorageRow) -> dict[str, Any]:
        return encode_skeleton(self._as_skeleton(raw), self._link_field)

    def _as_skeleton(self, raw: StorageRow) -> PriceRowSkeleton:
        row = decode_row({ROW_ID_COLUMN: 0, **raw}, self._link_field)
        return PriceRowSkeleton(
            link_field_value=row.link_field_value,
            all_groups=row.all_groups,
            customer_group_id=row.customer_group_id,
            qty=row.qty,
            value=row.value,
            percentage_value=row.percentage_value,
            price_list_name=row.price_list_name,
        )

    def _key(self, row: dict[str, Any]) -> tuple:
        return (
            row[self._link_field],
            row["all_groups"],
            row["customer_group_id"],
            row["qty"],
            row["price_list"],
        )


class RecordingPriceIndexer(PriceIndexer):
    """Indexer that records every invalidation request."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.calls: list[list[int]] = []

    def reindex_list(self, ids: list[int]) -> None:
        with self._lock:
            self.calls.append(list(ids))

    @property
    def reindexed_ids(self) -> set[int]:
        return {product_id for call in self.calls for product_id in call}


def build_in_memory_catalog(
    snapshot: CatalogSnapshot,
) -> tuple[InMemoryProductIdLocator, InMemoryTierPriceRepository]:
    """Create locator and repository populated from ``snapshot``."""
    locator = InMemoryProductIdLocator(snapshot.products)
    repository = InMemoryTierPriceRepository(link_field=snapshot.link_field)
    repository.seed(snapshot.rows)
    return locator, repository


def dump_in_memory_catalog(
    locator: InMemoryProductIdLocator, repository: InMemoryTierPriceRepository
) -> CatalogSnapshot:
    """Capture locator and repository state as a snapshot."""
    return CatalogSnapshot(
        link_field=repository.link_field_name,
        products=locator.products(),
        rows=sorted(repository.rows(), key=lambda row: row[ROW_ID_COLUMN]),
    )
