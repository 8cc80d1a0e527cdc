# 报价引擎：Shopify carrier 回调 → 候选运费列表

from __future__ import annotations
from dataclasses import dataclass, asdict
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence
import logging

from sqlalchemy.orm import Session

from app.core.config import settings
from app.db.model.shipping_rule import ShippingRule, ShippingRange
from app.repository.shipping_rule_repo import list_rules_for_shop
from app.services.shipping.countries import contains_country, normalize_country
from app.services.shipping.ranges import ChargeBy, sort_ranges, to_decimal


logger = logging.getLogger(__name__)


# --------- 常量与工具 ----------
_ZERO = Decimal("0")
_GRAMS_PER_KG = Decimal("1000")
_MINOR_PER_MAJOR = Decimal("100")   # 元 → 分


def _num(val: Any) -> Decimal:
    """单个明细字段的宽松解析：缺失/非数字一律按 0，不让一行坏数据拖垮整单报价。"""
    num = to_decimal(val)
    return num if num is not None else _ZERO



# --------- 输入 / 输出模型 ----------
@dataclass
class ShipmentMeasure:
    weight_kg: Decimal
    volume_cbm: Decimal
    quantity: Decimal
    item_count: int


@dataclass
class RateCandidate:
    service_name: str
    service_code: str
    total_price: str       # 最小货币单位（分）的整数字符串，Shopify 要求
    currency: str
    description: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)



# --------- 逐步计算 ----------
def aggregate_measurements(items: Any) -> ShipmentMeasure:
    """
    汇总 rate.items：
      - grams 求和后 ÷1000 得到 kg
      - quantity 求和得到件数
      - 体积目前上游不提供，固定为 0（等待体积数据源，不要在这里自行估算）
    """
    rows = items if isinstance(items, list) else []
    grams = _ZERO
    qty = _ZERO
    for it in rows:
        if not isinstance(it, Mapping):
            continue
        grams += _num(it.get("grams"))
        qty += _num(it.get("quantity"))
    return ShipmentMeasure(
        weight_kg=grams / _GRAMS_PER_KG,
        volume_cbm=_ZERO,
        quantity=qty,
        item_count=len(rows),
    )


def _rate_section(payload: Any) -> Mapping[str, Any]:
    rate = payload.get("rate") if isinstance(payload, Mapping) else None
    return rate if isinstance(rate, Mapping) else {}


def extract_destination(payload: Any) -> str:
    """destination.country 优先，其次 destination.country_code；统一走国家标准化。"""
    dest = _rate_section(payload).get("destination")
    if not isinstance(dest, Mapping):
        return ""
    return normalize_country(dest.get("country") or dest.get("country_code"))


def measure_for(charge_by: Any, measure: ShipmentMeasure) -> Decimal:
    basis = ChargeBy.parse(charge_by, ChargeBy.WEIGHT)
    if basis is ChargeBy.VOLUME:
        return measure.volume_cbm
    if basis is ChargeBy.QUANTITY:
        return measure.quantity
    return measure.weight_kg


def find_range(ranges: Iterable[ShippingRange], value: Decimal) -> Optional[ShippingRange]:
    """
    升序扫描，取第一个 from <= value <= to 的区间。
    两段共用边界（如 [0,10] 与 [10,20]）时，边界值 10 命中前一段，这是有意的取舍。
    """
    for rg in sort_ranges(ranges):
        lo, hi = to_decimal(rg.from_val), to_decimal(rg.to_val)
        if lo is None or hi is None:
            continue
        if lo <= value <= hi:
            return rg
    return None


def compute_price_minor(price_per: Any, value: Decimal, fee: Any) -> int:
    """
    price = price_per * value + fee，换算成分后四舍五入（ROUND_HALF_UP，0.5 分进 1），负数按 0。
    全程 Decimal，避免 0.1+0.2 这类浮点误差影响舍入。
    """
    price = _num(price_per) * value + _num(fee)
    minor = (price * _MINOR_PER_MAJOR).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return max(0, int(minor))


def resolve_currency(payload_currency: Any, fee_unit: Any, default: Optional[str] = None) -> str:
    """币种兜底链：回调里的 currency → 区间 fee_unit → 配置的默认币种。"""
    for candidate in (payload_currency, fee_unit):
        text = str(candidate or "").strip()
        if text:
            return text.upper()
    return (default or settings.DEFAULT_CURRENCY).upper()


def service_code_for(rule_id: Any) -> str:
    # 同一条规则每次回调得到同一个 code，便于 Shopify 侧关联
    suffix = str(rule_id or "")[-6:]
    return f"{settings.CARRIER_SERVICE_CODE_PREFIX}_{suffix}"


def rule_matches_destination(rule: ShippingRule, destination: str) -> bool:
    return contains_country(rule.countries, destination)


@dataclass
class QuoteResult:
    rates: List[RateCandidate]
    measure: ShipmentMeasure
    destination: str
    matched: int        # 国家命中的规则数（不论是否找到区间）


'''
主流程（纯计算，不写库）：
  1) 汇总重量/件数
  2) 取目的国并标准化
  3) 过滤国家命中的规则
  4) 每条规则按计费方式取计量值，升序找第一个命中的区间；没命中就跳过
  5) 计算价格（分）与币种
'''
def evaluate(rules: Sequence[ShippingRule], payload: Any) -> QuoteResult:
    rate = _rate_section(payload)
    measure = aggregate_measurements(rate.get("items"))
    destination = extract_destination(payload)
    payload_currency = rate.get("currency")

    matched = 0
    rates: List[RateCandidate] = []
    for rule in rules:
        if not rule_matches_destination(rule, destination):
            continue
        matched += 1
        value = measure_for(rule.charge_by, measure)
        rg = find_range(rule.ranges or [], value)
        if rg is None:
            logger.debug("rate_engine.no_range rule=%s value=%s", rule.id, value)
            continue

        rates.append(
            RateCandidate(
                service_name=rule.name,
                service_code=service_code_for(rule.id),
                total_price=str(compute_price_minor(rg.price_per, value, rg.fee)),
                currency=resolve_currency(payload_currency, rg.fee_unit),
                description=rule.description or f"{rule.charge_by} based rate",
            )
        )
    return QuoteResult(rates=rates, measure=measure, destination=destination, matched=matched)


def quote(rules: Sequence[ShippingRule], payload: Any) -> List[RateCandidate]:
    return evaluate(rules, payload).rates


def quote_for_shop(db: Session, shop: str, payload: Any) -> List[RateCandidate]:
    """每次回调只读一次该店铺的全部规则；国家过滤在内存里做。"""
    rules = list_rules_for_shop(db, shop) if shop else []
    result = evaluate(rules, payload)
    measure = result.measure
    logger.info(
        "carrier.quote shop=%s dest=%s items=%s total_kg=%s total_qty=%s rules=%s matched=%s rates=%s",
        shop, result.destination, measure.item_count, measure.weight_kg, measure.quantity,
        len(rules), result.matched, len(result.rates),
    )
    return result.rates
