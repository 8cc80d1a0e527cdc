"""
区间表：解析 / 排序 / 校验（纯函数）

- parse_range：把前端表单、导入文件里的各种字段名统一成 RangeDraft
- sort_ranges：全项目唯一的排序入口（from_val 升序，再 to_val 升序）
- validate_ranges：返回全部违规项 [{index, message}]，空列表即合法
"""
from __future__ import annotations
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, TypeVar

from app.core.config import settings


class ChargeBy(str, Enum):
    WEIGHT = "weight"
    VOLUME = "volume"
    QUANTITY = "quantity"

    @classmethod
    def parse(cls, value: Any, default: Optional["ChargeBy"] = None) -> Optional["ChargeBy"]:
        text = str(value or "").strip().lower()
        for member in cls:
            if member.value == text:
                return member
        return default


DEFAULT_UNITS = {
    ChargeBy.WEIGHT: "KG",
    ChargeBy.VOLUME: "CBM",
    ChargeBy.QUANTITY: "PCS",
}

_INF = Decimal("Infinity")
_ZERO = Decimal("0")


def default_unit(charge_by: Any) -> str:
    return DEFAULT_UNITS.get(ChargeBy.parse(charge_by, ChargeBy.WEIGHT), "KG")


def to_decimal(value: Any) -> Optional[Decimal]:
    """
    数值解析：缺失/空串按 0；无法解析、NaN、Infinity 返回 None（由校验器报错，不抛异常）。
    """
    if value is None:
        return _ZERO
    if isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        num = value
    else:
        text = str(value).strip()
        if not text:
            return _ZERO
        try:
            num = Decimal(text)
        except (InvalidOperation, ValueError):
            return None
    if not num.is_finite():
        return None
    return num


def _pick(raw: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        if key in raw and raw[key] is not None:
            return raw[key]
    return None


@dataclass
class RangeDraft:
    """待写入的一行区间；数值字段为 None 表示原始输入不是数字。"""
    from_val: Optional[Decimal]
    to_val: Optional[Decimal]
    unit: str
    price_per: Optional[Decimal]
    fee: Optional[Decimal]
    fee_unit: str
    # 保留原始输入，便于把无法解析的值原样回显给前端
    raw_from: Any = None
    raw_to: Any = None
    raw_price_per: Any = None
    raw_fee: Any = None

    def as_payload(self) -> Dict[str, Any]:
        return {
            "fromVal": _jsonable(self.from_val, self.raw_from),
            "toVal": _jsonable(self.to_val, self.raw_to),
            "unit": self.unit,
            "pricePer": _jsonable(self.price_per, self.raw_price_per),
            "fee": _jsonable(self.fee, self.raw_fee),
            "feeUnit": self.fee_unit,
        }


def _jsonable(num: Optional[Decimal], raw: Any) -> Any:
    if num is None:
        return raw
    return int(num) if num == num.to_integral_value() else float(num)


def parse_range(raw: Mapping[str, Any], charge_by: Any, *, fee_unit_default: Optional[str] = None) -> RangeDraft:
    """兼容 from/fromVal/from_val 等多种字段名；单位、币种缺省按计费方式与配置补齐。"""
    raw_from = _pick(raw, "fromVal", "from", "from_val")
    raw_to = _pick(raw, "toVal", "to", "to_val")
    unit = str(_pick(raw, "unit") or "").strip() or default_unit(charge_by)
    fee_unit = (
        str(_pick(raw, "feeUnit", "fee_unit") or "").strip()
        or fee_unit_default
        or settings.DEFAULT_FEE_UNIT
    )
    raw_price_per = _pick(raw, "pricePer", "price_per")
    raw_fee = _pick(raw, "fee")
    return RangeDraft(
        from_val=to_decimal(raw_from),
        to_val=to_decimal(raw_to),
        unit=unit,
        price_per=to_decimal(raw_price_per),
        fee=to_decimal(raw_fee),
        fee_unit=fee_unit.upper(),
        raw_from=raw_from,
        raw_to=raw_to,
        raw_price_per=raw_price_per,
        raw_fee=raw_fee,
    )


def parse_ranges(raws: Any, charge_by: Any, *, fee_unit_default: Optional[str] = None) -> List[RangeDraft]:
    if not isinstance(raws, (list, tuple)):
        return []
    return [
        parse_range(r if isinstance(r, Mapping) else {}, charge_by, fee_unit_default=fee_unit_default)
        for r in raws
    ]


T = TypeVar("T")


def _bound(value: Any) -> Decimal:
    # None 表示原始输入不是数字，排到最后
    if value is None:
        return _INF
    num = value if isinstance(value, Decimal) else to_decimal(value)
    return _INF if num is None else num


def range_sort_key(item: Any) -> tuple:
    """
    排序键：(from_val, to_val)。无法解析的边界排到最后。
    RangeDraft 和 ORM ShippingRange 的属性名一致，所以两者共用同一个键。
    """
    return (_bound(item.from_val), _bound(item.to_val))


def sort_ranges(items: Iterable[T]) -> List[T]:
    return sorted(items, key=range_sort_key)


def _is_integer(num: Decimal) -> bool:
    return num == num.to_integral_value()


# 与 shipping_ranges 的 Numeric(14, 4) 列一致：整数部分最多 10 位，小数最多 4 位
MAX_STORED_VALUE = Decimal("1e10")
MAX_SCALE = 4


def _fits_column(num: Decimal) -> bool:
    if abs(num) >= MAX_STORED_VALUE:
        return False
    return -num.normalize().as_tuple().exponent <= MAX_SCALE


'''
区间校验（保存前执行；导入只做解析，保存时再统一校验）
  1) 先排序；下标按排序后的位置报告
  2) 单行：起止必须是数字（否则本行其余检查跳过）；止 ≥ 起；
     按件计费时起止是 ≥1 的整数，其它计费方式起止 ≥ 0；单价、固定费 ≥ 0；
     所有数值都要能原样存进 Numeric(14, 4)
  3) 跨行：每一行的起 ≥ 前面最近一个数字行的止（允许共用边界，报价时边界值落在前一段）；
     非数字行不参与比较，也不会挡住它前后两行之间的重叠检查
'''
def validate_ranges(ranges: Sequence[RangeDraft], charge_by: Any) -> List[Dict[str, Any]]:
    errors: List[Dict[str, Any]] = []
    ordered = sort_ranges(ranges)
    is_quantity = ChargeBy.parse(charge_by) is ChargeBy.QUANTITY

    for idx, r in enumerate(ordered):
        a, b = r.from_val, r.to_val
        if a is None or b is None:
            errors.append({"index": idx, "message": "Range bounds must be numbers"})
            continue
        if b < a:
            errors.append({"index": idx, "message": "Range end must be greater than or equal to range start"})
        if is_quantity:
            if not _is_integer(a) or not _is_integer(b) or a < 1 or b < 1:
                errors.append({"index": idx, "message": "Quantity ranges must be integers of at least 1"})
        elif a < 0 or b < 0:
            errors.append({"index": idx, "message": "Range bounds must not be negative"})
        if r.price_per is None or r.price_per < 0:
            errors.append({"index": idx, "message": "Price per unit must be a non-negative number"})
        if r.fee is None or r.fee < 0:
            errors.append({"index": idx, "message": "Fee must be a non-negative number"})
        if not all(_fits_column(n) for n in (a, b, r.price_per, r.fee) if n is not None):
            errors.append({
                "index": idx,
                "message": "Values must be below 10000000000 with at most 4 decimal places",
            })

    prev_to: Optional[Decimal] = None
    for idx, r in enumerate(ordered):
        if r.from_val is None or r.to_val is None:
            continue
        if prev_to is not None and r.from_val < prev_to:
            errors.append({"index": idx, "message": "Range start must be greater than or equal to the previous range end"})
        prev_to = r.to_val

    return errors
