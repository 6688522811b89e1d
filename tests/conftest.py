"""Shared test fixtures."""

from collections.abc import Callable, Generator
from decimal import Decimal
from typing import Any

import pytest

from tierprice.config import TierPriceConfig
from tierprice.models import PriceRecord
from tierprice.repositories.memory import (
    InMemoryProductIdLocator,
    InMemoryTierPriceRepository,
    RecordingPriceIndexer,
)
from tierprice.storage import TierPriceStorage
from tierprice.validator import TierPriceValidator


@pytest.fixture
def config() -> TierPriceConfig:
    """Provide a test-owned config independent of the environment."""
    return TierPriceConfig(
        _env_file=None,
        link_field="entity_id",
        customer_groups="0,1,2,3",
        allowed_price_lists="EUR,USD",
        api_keys="test-api-key",
    )


@pytest.fixture
def locator() -> InMemoryProductIdLocator:
    return InMemoryProductIdLocator({"X": [42], "A": [3, 1, 2], "B": [7]})


@pytest.fixture
def repository() -> Generator[InMemoryTierPriceRepository, None, None]:
    repo = InMemoryTierPriceRepository(link_field="entity_id")
    yield repo
    repo.reset()


@pytest.fixture
def indexer() -> RecordingPriceIndexer:
    return RecordingPriceIndexer()


@pytest.fixture
def storage(
    config: TierPriceConfig,
    locator: InMemoryProductIdLocator,
    repository: InMemoryTierPriceRepository,
    indexer: RecordingPriceIndexer,
) -> TierPriceStorage:
    return TierPriceStorage(
        repository=repository,
        validator=TierPriceValidator(config),
        locator=locator,
        indexer=indexer,
    )


@pytest.fixture
def make_price() -> Callable[..., PriceRecord]:
    """Build a valid fixed tier price, overriding any field."""

    def _make(**overrides: Any) -> PriceRecord:
        fields: dict[str, Any] = {
            "sku": "X",
            "customer_group_id": 1,
            "all_groups": False,
            "qty": Decimal("5"),
            "value": Decimal("9.99"),
            "percentage_value": None,
        }
        fields.update(overrides)
        return PriceRecord(**fields)

    return _make


@pytest.fixture
def make_row() -> Callable[..., dict[str, Any]]:
    """Build a storage row keyed by the ``entity_id`` link column."""

    def _make(value_id: int, entity_id: int, **overrides: Any) -> dict[str, Any]:
        row: dict[str, Any] = {
            "value_id": value_id,
            "entity_id": entity_id,
            "all_groups": False,
            "customer_group_id": 1,
            "qty": Decimal("5"),
            "value": Decimal("9.99"),
            "percentage_value": None,
            "price_list": None,
        }
        row.update(overrides)
        return row

    return _make
