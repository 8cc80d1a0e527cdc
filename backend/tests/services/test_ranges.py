from decimal import Decimal

import pytest

from app.services.shipping.ranges import (
    ChargeBy,
    default_unit,
    parse_range,
    parse_ranges,
    sort_ranges,
    to_decimal,
    validate_ranges,
)


def _ranges(*rows, charge_by="weight"):
    return parse_ranges(
        [{"from": a, "to": b, "pricePer": p, "fee": f} for a, b, p, f in rows],
        charge_by,
    )


# ---------- 解析 ----------
def test_to_decimal_lenient_parsing():
    assert to_decimal(None) == Decimal("0")
    assert to_decimal("") == Decimal("0")
    assert to_decimal(" 1.5 ") == Decimal("1.5")
    assert to_decimal(3) == Decimal("3")
    assert to_decimal("abc") is None
    assert to_decimal("NaN") is None
    assert to_decimal("Infinity") is None
    assert to_decimal(True) is None


def test_parse_range_accepts_field_aliases_and_defaults():
    a = parse_range({"fromVal": "1", "toVal": 2, "pricePer": "3.5", "fee": None}, "weight")
    b = parse_range({"from_val": 1, "to_val": 2, "price_per": 3.5, "feeUnit": "usd"}, "quantity")

    assert (a.from_val, a.to_val, a.price_per, a.fee) == (Decimal("1"), Decimal("2"), Decimal("3.5"), Decimal("0"))
    assert a.unit == "KG"
    assert a.fee_unit == "CNY"
    assert b.unit == "PCS"
    assert b.fee_unit == "USD"


def test_parse_range_keeps_raw_value_when_not_numeric():
    draft = parse_range({"from": "abc", "to": 2, "pricePer": "x"}, "weight")
    assert draft.from_val is None
    assert draft.price_per is None
    payload = draft.as_payload()
    assert payload["fromVal"] == "abc"
    assert payload["pricePer"] == "x"
    assert payload["toVal"] == 2


def test_default_unit_per_basis():
    assert default_unit("weight") == "KG"
    assert default_unit("volume") == "CBM"
    assert default_unit("quantity") == "PCS"
    assert default_unit("bogus") == "KG"


def test_charge_by_parse():
    assert ChargeBy.parse(" Quantity ") is ChargeBy.QUANTITY
    assert ChargeBy.parse("nope") is None
    assert ChargeBy.parse("nope", ChargeBy.WEIGHT) is ChargeBy.WEIGHT


# ---------- 排序 ----------
def test_sort_ranges_by_from_then_to():
    items = _ranges((10, 20, 0, 0), (0, 10, 0, 0), (0, 5, 0, 0))
    ordered = sort_ranges(items)
    assert [(r.from_val, r.to_val) for r in ordered] == [
        (Decimal(0), Decimal(5)),
        (Decimal(0), Decimal(10)),
        (Decimal(10), Decimal(20)),
    ]


def test_sort_ranges_keeps_zero_bound_first_and_unparsable_last():
    items = parse_ranges([{"from": "x", "to": 1}, {"from": 0, "to": 1}], "weight")
    ordered = sort_ranges(items)
    assert ordered[0].from_val == Decimal(0)
    assert ordered[1].from_val is None


# ---------- 校验 ----------
def test_valid_contiguous_table_has_no_errors():
    items = _ranges((0, 10, 1, 0), (10, 20, 1, 0), (25, 30, 0, 5))
    assert validate_ranges(items, "weight") == []


# 一次返回全部违规项：三处问题 → 三条错误
def test_every_violation_is_reported():
    items = _ranges(
        (0, 10, 1, 0),
        (5, 15, 1, 0),     # 与上一段重叠
        (20, 18, 1, 0),    # 止 < 起
        (30, 40, -1, 0),   # 单价为负
    )
    errors = validate_ranges(items, "weight")
    assert len(errors) == 3
    assert {e["index"] for e in errors} == {1, 2, 3}


# 非数字边界、负固定费、相邻重叠各一处 → 三条错误，下标按排序后的位置
def test_non_numeric_negative_fee_and_overlap_each_reported():
    items = parse_ranges(
        [
            {"from": 0, "to": 10, "pricePer": 1, "fee": 0},
            {"from": "x", "to": 12, "pricePer": 1, "fee": 0},
            {"from": 8, "to": 20, "pricePer": 1, "fee": 0},
            {"from": 25, "to": 30, "pricePer": 1, "fee": -1},
        ],
        "weight",
    )
    assert validate_ranges(items, "weight") == [
        {"index": 2, "message": "Fee must be a non-negative number"},
        {"index": 3, "message": "Range bounds must be numbers"},
        {"index": 1, "message": "Range start must be greater than or equal to the previous range end"},
    ]


# 非数字行夹在两段重叠区间之间，不能把重叠藏起来
def test_non_numeric_row_does_not_hide_overlap():
    items = parse_ranges(
        [{"from": 0, "to": 10}, {"from": 5, "to": "x"}, {"from": 8, "to": 20}],
        "weight",
    )
    ordered = sort_ranges(items)
    assert [r.raw_to for r in ordered] == [10, 20, "x"]

    errors = validate_ranges(items, "weight")
    assert {"index": 2, "message": "Range bounds must be numbers"} in errors
    assert {"index": 1, "message": "Range start must be greater than or equal to the previous range end"} in errors
    assert len(errors) == 2


@pytest.mark.parametrize(
    "row",
    [
        {"from": 0, "to": "1e12"},          # 超出 Numeric(14, 4) 整数位
        {"from": 0, "to": "0.00005"},       # 小数超过 4 位
        {"from": 0, "to": 1, "pricePer": "12345678901"},
        {"from": 0, "to": 1, "fee": "0.12345"},
    ],
)
def test_values_that_do_not_fit_the_column_are_rejected(row):
    errors = validate_ranges(parse_ranges([row], "weight"), "weight")
    assert errors == [{"index": 0, "message": "Values must be below 10000000000 with at most 4 decimal places"}]


def test_trailing_zeros_and_max_scale_fit():
    items = parse_ranges([{"from": "0.0001", "to": "9999999999.9999", "pricePer": "1.50000", "fee": 0}], "weight")
    assert validate_ranges(items, "weight") == []


def test_errors_are_indexed_in_sorted_order():
    items = _ranges((10, 20, 1, 0), (0, 15, 1, 0))
    errors = validate_ranges(items, "weight")
    assert errors == [
        {"index": 1, "message": "Range start must be greater than or equal to the previous range end"},
    ]


def test_non_numeric_bound_reported_once_per_row():
    items = parse_ranges([{"from": "abc", "to": "def", "pricePer": -1, "fee": -1}], "weight")
    errors = validate_ranges(items, "weight")
    assert errors == [{"index": 0, "message": "Range bounds must be numbers"}]


@pytest.mark.parametrize(
    "row",
    [
        (0, 5, 1, 0),      # 按件计费起点必须 ≥ 1
        (1.5, 5, 1, 0),    # 必须是整数
        (1, 5.5, 1, 0),
    ],
)
def test_quantity_bounds_must_be_positive_integers(row):
    errors = validate_ranges(_ranges(row, charge_by="quantity"), "quantity")
    assert errors == [{"index": 0, "message": "Quantity ranges must be integers of at least 1"}]


def test_quantity_integer_table_is_valid():
    assert validate_ranges(_ranges((1, 5, 10, 0), (6, 10, 8, 0), charge_by="quantity"), "quantity") == []


def test_negative_bounds_rejected_for_weight():
    errors = validate_ranges(_ranges((-1, 5, 1, 0)), "weight")
    assert errors == [{"index": 0, "message": "Range bounds must not be negative"}]


def test_non_numeric_fee_is_reported():
    items = parse_ranges([{"from": 0, "to": 1, "pricePer": 1, "fee": "free"}], "weight")
    assert validate_ranges(items, "weight") == [
        {"index": 0, "message": "Fee must be a non-negative number"},
    ]
