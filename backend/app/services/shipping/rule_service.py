"""
运费规则写入 / 读取服务（后台表单、导入后保存都走这里）

写入顺序：
  1) 基本参数（名称、区间列表）→ MalformedInputError
  2) 更新时校验归属 → RuleNotFoundError（不区分“不存在”和“别的店铺的”）
  3) 同店铺重名 → RuleNameConflictError
  4) 区间校验 → RangeValidationError（一次返回全部违规项）
  5) 标准化国家、排序区间后整体写入
"""
from __future__ import annotations
from typing import Any, Dict, Iterable, List, Mapping, Optional
import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.db.model.shipping_rule import ShippingRule
from app.repository import shipping_rule_repo as repo
from app.services.shipping.countries import normalize_countries
from app.services.shipping.errors import (
    MalformedInputError,
    RangeValidationError,
    RuleNameConflictError,
    RuleNotFoundError,
)
from app.services.shipping.ranges import ChargeBy, parse_ranges, sort_ranges, validate_ranges
from app.utils.serialization import to_jsonable


logger = logging.getLogger(__name__)


def list_rules(db: Session, shop: str) -> List[Dict[str, Any]]:
    return [serialize_rule(r) for r in repo.list_rules_for_shop(db, shop)]


def get_rule(db: Session, shop: str, rule_id: str) -> ShippingRule:
    rule = repo.get_rule_for_shop(db, shop, rule_id)
    if rule is None:
        raise RuleNotFoundError()
    return rule


def save_rule(db: Session, shop: str, payload: Mapping[str, Any]) -> tuple[ShippingRule, bool]:
    """
    payload: {id?, name, chargeBy, countries, description?, ranges[]}
    返回 (rule, created)。带 id 时为整体更新，否则创建。
    """
    if not isinstance(payload, Mapping):
        raise MalformedInputError("Request body must be an object")

    rule_id = str(payload.get("id") or "").strip() or None
    name = str(payload.get("name") or "").strip()
    raw_ranges = payload.get("ranges")
    if not name or not isinstance(raw_ranges, list) or not raw_ranges:
        raise MalformedInputError("Missing rule name or ranges")

    charge_by = ChargeBy.parse(payload.get("chargeBy", payload.get("charge_by")) or ChargeBy.WEIGHT.value)
    if charge_by is None:
        raise MalformedInputError("chargeBy must be one of weight, volume, quantity")

    existing: Optional[ShippingRule] = None
    if rule_id:
        existing = get_rule(db, shop, rule_id)

    if repo.find_rule_id_by_name(db, shop, name, exclude_id=rule_id):
        raise RuleNameConflictError(name)

    drafts = sort_ranges(parse_ranges(raw_ranges, charge_by.value))
    range_errors = validate_ranges(drafts, charge_by.value)
    if range_errors:
        raise RangeValidationError(range_errors)

    description = str(payload.get("description") or "").strip() or None
    fields = {
        "name": name,
        "charge_by": charge_by.value,
        "countries": normalize_countries(payload.get("countries")),
        "description": description,
    }

    try:
        if existing is not None:
            rule = repo.replace_rule(db, existing, fields, drafts)
        else:
            rule = repo.insert_rule(db, shop, fields, drafts)
    except IntegrityError as exc:
        # 并发下两个请求同时通过重名检查，由唯一约束兜底
        logger.warning("shipping_rules.integrity_error shop=%s name=%s err=%s", shop, name, exc.orig)
        raise RuleNameConflictError(name) from exc

    logger.info(
        "shipping_rules.saved shop=%s id=%s created=%s ranges=%s countries=%s",
        shop, rule.id, existing is None, len(drafts), len(fields["countries"]),
    )
    return rule, existing is None


def delete_rule(db: Session, shop: str, rule_id: str) -> str:
    deleted = repo.delete_rules(db, shop, [rule_id])
    if not deleted:
        raise RuleNotFoundError()
    return deleted[0]


def delete_rules_batch(db: Session, shop: str, rule_ids: Any) -> List[str]:
    if not isinstance(rule_ids, list) or not rule_ids:
        raise MalformedInputError("ids must be a non-empty list")
    return repo.delete_rules(db, shop, (str(i) for i in rule_ids if i))


def serialize_range(rg: Any) -> Dict[str, Any]:
    return {
        "id": getattr(rg, "id", None),
        "fromVal": to_jsonable(rg.from_val),
        "toVal": to_jsonable(rg.to_val),
        "unit": rg.unit,
        "pricePer": to_jsonable(rg.price_per),
        "fee": to_jsonable(rg.fee),
        "feeUnit": rg.fee_unit,
    }


def serialize_rule(rule: ShippingRule) -> Dict[str, Any]:
    """读路径同样标准化国家、排序区间，保证返回与存储一致。"""
    return {
        "id": rule.id,
        "shop": rule.shop,
        "name": rule.name,
        "chargeBy": rule.charge_by,
        "countries": normalize_countries(rule.countries),
        "description": rule.description,
        "ranges": [serialize_range(rg) for rg in sort_ranges(rule.ranges or [])],
        "createdAt": to_jsonable(rule.created_at),
        "updatedAt": to_jsonable(rule.updated_at),
    }


def rules_brief(rules: Iterable[ShippingRule]) -> List[Dict[str, Any]]:
    """诊断页用的规则摘要。"""
    out: List[Dict[str, Any]] = []
    for r in rules:
        ranges = sort_ranges(r.ranges or [])
        first = ranges[0] if ranges else None
        out.append({
            "id": r.id,
            "name": r.name,
            "chargeBy": r.charge_by,
            "countriesCount": len(normalize_countries(r.countries)),
            "rangesCount": len(ranges),
            "exampleRange": (
                {"from": to_jsonable(first.from_val), "to": to_jsonable(first.to_val), "unit": first.unit}
                if first is not None else None
            ),
        })
    return out
