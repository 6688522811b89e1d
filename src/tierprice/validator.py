"""Tier price record validation."""

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Mapping, Optional, Protocol, Sequence

from .exceptions import ContractError
from .lookup import SkuIdLookup
from .models import PriceRecord, RejectedRecord

if TYPE_CHECKING:
    from .config import TierPriceConfig

logger = logging.getLogger(__name__)

ExistingPrices = Mapping[str, Sequence[PriceRecord]]


@dataclass
class ValidationResult:
    """Per-record verdicts keyed by the record's position in the batch."""

    failed: dict[int, RejectedRecord] = field(default_factory=dict)

    def add_failure(self, index: int, record: PriceRecord, code: str, message: str) -> None:
        # First failing rule is the reported reason.
        if index not in self.failed:
            self.failed[index] = RejectedRecord(
                record=record, reason_code=code, message=message
            )

    @property
    def failed_indices(self) -> set[int]:
        return set(self.failed)

    @property
    def failed_items(self) -> list[RejectedRecord]:
        return [self.failed[i] for i in sorted(self.failed)]


class RecordValidator(Protocol):
    """Produces pass/fail verdicts for tier price batches.

    The orchestrator resolves SKUs once per operation and hands the resulting
    lookup in, so validators never talk to the product locator themselves.
    """

    def validate_skus(self, skus: Sequence[str], lookup: SkuIdLookup) -> list[str]:
        ...

    def validate(
        self,
        records: Sequence[PriceRecord],
        lookup: SkuIdLookup,
        existing: Optional[ExistingPrices] = None,
    ) -> ValidationResult:
        ...


class TierPriceValidator:
    """Validate tier price records against catalog and configuration."""

    def __init__(self, config: "TierPriceConfig"):
        """Initialize validator with configuration."""
        from .config import TierPriceConfig

        self.config: TierPriceConfig = config
        self.customer_groups = config.get_customer_groups()
        self.price_lists = config.get_allowed_price_lists()

    def validate_skus(self, skus: Sequence[str], lookup: SkuIdLookup) -> list[str]:
        """
        Validate a SKU list for price retrieval.

        Returns:
            De-duplicated SKUs in first-seen order.

        Raises:
            ContractError: empty list, blank SKU, or SKUs unknown to the catalog.
        """
        if not skus:
            raise ContractError("INVALID_PAYLOAD", "At least one SKU is required")

        cleaned = list(dict.fromkeys(sku.strip() for sku in skus))
        if any(not sku for sku in cleaned):
            raise ContractError("INVALID_PAYLOAD", "SKU cannot be empty")

        missing = [sku for sku in cleaned if not lookup.ids_for(sku)]
        if missing:
            raise ContractError(
                "NOT_FOUND",
                f"Requested products don't exist: {', '.join(missing)}",
                status_code=404,
                details={"skus": missing},
            )
        return cleaned

    def validate(
        self,
        records: Sequence[PriceRecord],
        lookup: SkuIdLookup,
        existing: Optional[ExistingPrices] = None,
    ) -> ValidationResult:
        """
        Validate a price batch.

        Args:
            records: Batch in caller order
            lookup: Identifiers resolved for the batch's SKUs
            existing: Persisted prices grouped by SKU (update only)

        Returns:
            ValidationResult with the first failing rule per rejected record
        """
        result = ValidationResult()
        seen: set[tuple] = set()
        existing_keys = self._existing_keys(existing) if existing is not None else None

        for index, record in enumerate(records):
            error = self._check_record(record, lookup)
            if error:
                result.add_failure(index, record, *error)
                continue

            key = record.dimension_key()
            if key in seen:
                result.add_failure(
                    index,
                    record,
                    "DUPLICATE",
                    f"Duplicate tier price for SKU {record.sku} at qty {record.qty}",
                )
                continue
            seen.add(key)

            if existing_keys is not None and key not in existing_keys:
                result.add_failure(
                    index,
                    record,
                    "NOT_FOUND",
                    f"No existing tier price for SKU {record.sku} at qty {record.qty}",
                )

        if result.failed:
            logger.info("Rejected %d of %d tier prices", len(result.failed), len(records))
        return result

    @staticmethod
    def _existing_keys(existing: ExistingPrices) -> set[tuple]:
        return {price.dimension_key() for prices in existing.values() for price in prices}

    def _check_record(
        self, record: PriceRecord, lookup: SkuIdLookup
    ) -> Optional[tuple[str, str]]:
        if not record.sku.strip():
            return "INVALID_SKU", "SKU cannot be empty"
        if not lookup.ids_for(record.sku):
            return "UNKNOWN_SKU", f"Requested product doesn't exist: {record.sku}"
        if record.qty <= 0:
            return "INVALID_QTY", f"Quantity must be greater than 0, got {record.qty}"
        if record.value < 0:
            return "INVALID_PRICE", f"Price cannot be negative, got {record.value}"
        if record.price_type == "fixed" and record.value == 0:
            return "INVALID_PRICE", "Fixed tier price must be greater than 0"
        if record.percentage_value is not None and not 0 < record.percentage_value <= 100:
            return (
                "INVALID_PERCENTAGE",
                f"Percentage must be in (0, 100], got {record.percentage_value}",
            )
        if not record.all_groups and record.customer_group_id not in self.customer_groups:
            return (
                "INVALID_CUSTOMER_GROUP",
                f"Unknown customer group: {record.customer_group_id}",
            )
        if (
            record.price_list_name is not None
            and record.price_list_name.upper() not in self.price_lists
        ):
            return "INVALID_PRICE_LIST", f"Unknown price list: {record.price_list_name}"
        return None
