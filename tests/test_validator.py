"""Tests for TierPriceValidator."""

from decimal import Decimal

import pytest

from tierprice.config import TierPriceConfig
from tierprice.exceptions import ContractError
from tierprice.lookup import SkuIdLookup
from tierprice.validator import TierPriceValidator


@pytest.fixture
def validator(config) -> TierPriceValidator:
    return TierPriceValidator(config)


@pytest.fixture
def lookup(locator) -> SkuIdLookup:
    return SkuIdLookup.resolve(locator, ["X", "A", "B"])


def test_valid_batch_has_no_failures(validator, lookup, make_price) -> None:
    result = validator.validate(
        [make_price(), make_price(sku="A", qty=Decimal("2"))], lookup
    )

    assert result.failed_items == []
    assert result.failed_indices == set()


@pytest.mark.parametrize(
    ("overrides", "code"),
    [
        ({"sku": "  "}, "INVALID_SKU"),
        ({"sku": "ghost"}, "UNKNOWN_SKU"),
        ({"qty": Decimal("0")}, "INVALID_QTY"),
        ({"qty": Decimal("-1")}, "INVALID_QTY"),
        ({"value": Decimal("0")}, "INVALID_PRICE"),
        ({"value": Decimal("-4")}, "INVALID_PRICE"),
        ({"value": Decimal("-4"), "percentage_value": Decimal("10")}, "INVALID_PRICE"),
        ({"percentage_value": Decimal("0")}, "INVALID_PERCENTAGE"),
        ({"percentage_value": Decimal("150")}, "INVALID_PERCENTAGE"),
        ({"customer_group_id": 9}, "INVALID_CUSTOMER_GROUP"),
        ({"customer_group_id": -1}, "INVALID_CUSTOMER_GROUP"),
        ({"price_list_name": "GBP"}, "INVALID_PRICE_LIST"),
    ],
)
def test_rule_violations_report_reason(validator, lookup, make_price, overrides, code) -> None:
    result = validator.validate([make_price(**overrides)], lookup)

    (rejected,) = result.failed_items
    assert rejected.reason_code == code
    assert rejected.message


def test_first_failing_rule_wins(validator, lookup, make_price) -> None:
    result = validator.validate([make_price(qty=Decimal("0"), value=Decimal("0"))], lookup)

    assert result.failed_items[0].reason_code == "INVALID_QTY"


def test_all_groups_skips_customer_group_check(validator, lookup, make_price) -> None:
    result = validator.validate(
        [make_price(all_groups=True, customer_group_id=999)], lookup
    )

    assert result.failed_items == []


def test_price_list_is_case_insensitive(validator, lookup, make_price) -> None:
    result = validator.validate([make_price(price_list_name="eur")], lookup)

    assert result.failed_items == []


def test_discount_price_does_not_need_fixed_value(validator, lookup, make_price) -> None:
    result = validator.validate(
        [make_price(value=Decimal("0"), percentage_value=Decimal("100"))], lookup
    )

    assert result.failed_items == []


def test_duplicate_tier_in_batch_is_rejected(validator, lookup, make_price) -> None:
    prices = [
        make_price(value=Decimal("9.99")),
        make_price(value=Decimal("8.99")),
        make_price(qty=Decimal("6")),
    ]

    result = validator.validate(prices, lookup)

    assert result.failed_indices == {1}
    assert result.failed_items[0].reason_code == "DUPLICATE"


def test_update_cross_check_rejects_missing_existing_price(
    validator, lookup, make_price
) -> None:
    existing = {"X": [make_price(qty=Decimal("10"))]}

    result = validator.validate(
        [make_price(qty=Decimal("10")), make_price(qty=Decimal("5"))], lookup, existing
    )

    assert result.failed_indices == {1}
    assert result.failed_items[0].reason_code == "NOT_FOUND"


def test_failed_items_follow_batch_order(validator, lookup, make_price) -> None:
    prices = [make_price(sku="ghost"), make_price(), make_price(qty=Decimal("0"))]

    result = validator.validate(prices, lookup)

    assert [r.reason_code for r in result.failed_items] == ["UNKNOWN_SKU", "INVALID_QTY"]
    assert result.failed_indices == {0, 2}


def test_unknown_sku_comes_from_lookup_not_catalog(validator, make_price) -> None:
    lookup = SkuIdLookup(ids_by_sku={"X": ()}, sku_by_id={})

    result = validator.validate([make_price(sku="X")], lookup)

    assert result.failed_items[0].reason_code == "UNKNOWN_SKU"


def test_validate_skus_deduplicates_in_order(validator, lookup) -> None:
    assert validator.validate_skus(["A", "X", "A"], lookup) == ["A", "X"]


def test_validate_skus_rejects_empty_list(validator, lookup) -> None:
    with pytest.raises(ContractError, match="At least one SKU"):
        validator.validate_skus([], lookup)


def test_validate_skus_rejects_blank_sku(validator, lookup) -> None:
    with pytest.raises(ContractError) as exc_info:
        validator.validate_skus(["A", " "], lookup)
    assert exc_info.value.code == "INVALID_PAYLOAD"


def test_validate_skus_reports_unknown(validator, lookup) -> None:
    with pytest.raises(ContractError) as exc_info:
        validator.validate_skus(["A", "ghost"], lookup)

    assert exc_info.value.code == "NOT_FOUND"
    assert exc_info.value.status_code == 404
    assert exc_info.value.details == {"skus": ["ghost"]}


def test_customer_groups_come_from_config(lookup, make_price) -> None:
    validator = TierPriceValidator(TierPriceConfig(_env_file=None, customer_groups="9"))

    result = validator.validate([make_price(customer_group_id=9)], lookup)

    assert result.failed_items == []
