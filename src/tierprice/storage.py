"""Tier price reconciliation: fetch, update, replace and delete batches."""

from __future__ import annotations

import logging
from typing import Callable, Sequence, TypeVar

from tierprice.exceptions import CollaboratorError, ContractError
from tierprice.factory import decode_row, encode_skeleton, row_to_record
from tierprice.formatter import BatchFormatter
from tierprice.lookup import SkuIdLookup
from tierprice.matcher import match_price_row
from tierprice.models import PriceRecord, RejectedRecord
from tierprice.repositories.base import (
    PersistedPriceRow,
    PriceIndexer,
    ProductIdLocator,
    TierPriceRepository,
)
from tierprice.validator import RecordValidator

logger = logging.getLogger(__name__)

T = TypeVar("T")


class TierPriceStorage:
    """Coordinates validation, SKU lookup, persistence and reindexing.

    Holds no state between calls. Each write operation issues at most one
    persistence write and one reindex request; collaborator failures abort
    the whole call.
    """

    def __init__(
        self,
        repository: TierPriceRepository,
        validator: RecordValidator,
        locator: ProductIdLocator,
        indexer: PriceIndexer,
    ) -> None:
        self.repository = repository
        self.validator = validator
        self.locator = locator
        self.indexer = indexer

    def fetch(self, skus: Sequence[str]) -> list[PriceRecord]:
        """Return every persisted tier price of ``skus``, one record per row."""
        lookup = self._build_lookup([sku.strip() for sku in skus if sku.strip()])
        self.validator.validate_skus(skus, lookup)
        return self._existing_prices(lookup, self.repository.link_field_name)

    def update(self, prices: Sequence[PriceRecord]) -> list[RejectedRecord]:
        """Update existing tier prices; prices with no existing tier are rejected."""
        skus = _unique_skus(prices)
        link_field = self.repository.link_field_name
        lookup = self._build_lookup(skus)
        existing = self._existing_prices_by_sku(lookup, link_field)
        result = self.validator.validate(prices, lookup, existing)
        accepted = _remove_incorrect_prices(prices, result.failed_indices)

        if accepted:
            rows = self._format(accepted, lookup, link_field)
            self._call("PERSISTENCE_FAILURE", "update", self.repository.update, rows)
            self._reindex(lookup.affected_ids)

        logger.info(
            "update: %d accepted, %d rejected", len(accepted), len(result.failed)
        )
        return result.failed_items

    def replace(self, prices: Sequence[PriceRecord]) -> list[RejectedRecord]:
        """Replace all tier prices of the affected products with ``prices``."""
        link_field = self.repository.link_field_name
        lookup = self._build_lookup(_unique_skus(prices))
        result = self.validator.validate(prices, lookup)
        accepted = _remove_incorrect_prices(prices, result.failed_indices)
        lookup = lookup.restrict(_unique_skus(accepted))
        affected_ids = lookup.affected_ids

        rows = self._format(accepted, lookup, link_field)
        if affected_ids:
            self._call(
                "PERSISTENCE_FAILURE",
                "replace",
                self.repository.replace,
                rows,
                affected_ids,
            )
            self._reindex(affected_ids)

        logger.info(
            "replace: %d rows for %d products, %d rejected",
            len(rows),
            len(affected_ids),
            len(result.failed),
        )
        return result.failed_items

    def delete(self, prices: Sequence[PriceRecord]) -> list[RejectedRecord]:
        """Delete the persisted rows matching ``prices``; unmatched prices are ignored."""
        link_field = self.repository.link_field_name
        lookup = self._build_lookup(_unique_skus(prices))
        affected_ids = lookup.affected_ids
        result = self.validator.validate(prices, lookup)
        accepted = _remove_incorrect_prices(prices, result.failed_indices)

        row_ids = self._matching_row_ids(accepted, lookup, link_field)
        if row_ids:
            self._call("PERSISTENCE_FAILURE", "delete", self.repository.delete, row_ids)
        self._reindex(affected_ids)

        logger.info(
            "delete: %d rows removed, %d rejected", len(row_ids), len(result.failed)
        )
        return result.failed_items

    def _build_lookup(self, skus: Sequence[str]) -> SkuIdLookup:
        return self._call("LOOKUP_FAILURE", "lookup", SkuIdLookup.resolve, self.locator, skus)

    def _fetch_rows(self, ids: list[int], link_field: str) -> list[PersistedPriceRow]:
        if not ids:
            return []
        raw_rows = self._call("PERSISTENCE_FAILURE", "fetch", self.repository.fetch, ids)
        return [decode_row(raw, link_field) for raw in raw_rows]

    def _existing_prices(self, lookup: SkuIdLookup, link_field: str) -> list[PriceRecord]:
        return [
            row_to_record(row, lookup.sku_for(row.link_field_value))
            for row in self._fetch_rows(lookup.affected_ids, link_field)
        ]

    def _existing_prices_by_sku(
        self, lookup: SkuIdLookup, link_field: str
    ) -> dict[str, list[PriceRecord]]:
        grouped: dict[str, list[PriceRecord]] = {}
        for price in self._existing_prices(lookup, link_field):
            grouped.setdefault(price.sku, []).append(price)
        return grouped

    def _format(
        self, prices: Sequence[PriceRecord], lookup: SkuIdLookup, link_field: str
    ) -> list[dict]:
        skeletons = BatchFormatter(lookup).expand(prices)
        return [encode_skeleton(skeleton, link_field) for skeleton in skeletons]

    def _matching_row_ids(
        self, prices: Sequence[PriceRecord], lookup: SkuIdLookup, link_field: str
    ) -> list[int]:
        skeletons = BatchFormatter(lookup).expand(prices)
        if not skeletons:
            return []

        rows_by_link: dict[int, list[PersistedPriceRow]] = {}
        for row in self._fetch_rows(lookup.affected_ids, link_field):
            rows_by_link.setdefault(row.link_field_value, []).append(row)

        row_ids: dict[int, None] = {}
        for skeleton in skeletons:
            row_id = match_price_row(
                skeleton, rows_by_link.get(skeleton.link_field_value, [])
            )
            if row_id is not None:
                row_ids[row_id] = None
        return list(row_ids)

    def _reindex(self, ids: list[int]) -> None:
        if ids:
            self._call("INDEXER_FAILURE", "reindex", self.indexer.reindex_list, ids)

    @staticmethod
    def _call(code: str, operation: str, func: Callable[..., T], *args: object) -> T:
        try:
            return func(*args)
        except ContractError:
            raise
        except Exception as exc:
            logger.exception("Tier price %s failed: %s", operation, exc)
            raise CollaboratorError(code, operation, exc) from exc


def _unique_skus(prices: Sequence[PriceRecord]) -> list[str]:
    return list(dict.fromkeys(price.sku for price in prices if price.sku.strip()))


def _remove_incorrect_prices(
    prices: Sequence[PriceRecord], failed_indices: set[int]
) -> list[PriceRecord]:
    """Drop rejected prices by batch position, keeping relative order."""
    return [price for index, price in enumerate(prices) if index not in failed_indices]
