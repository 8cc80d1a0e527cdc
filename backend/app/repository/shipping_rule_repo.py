# 运费规则相关的 DB 操作（每个写函数 = 一个事务）

from __future__ import annotations
from typing import Any, Dict, Iterable, List, Optional, Sequence
import logging

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from app.db.model.shipping_rule import ShippingRule, ShippingRange
from app.services.shipping.ranges import RangeDraft, sort_ranges


logger = logging.getLogger(__name__)

# 允许写入的标量字段白名单（与模型一致）
RULE_FIELDS = ("name", "charge_by", "countries", "description")


"""报价 / 列表读取"""
def list_rules_for_shop(db: Session, shop: str) -> List[ShippingRule]:
    """
    读取某店铺的全部规则（含区间），新建的在前。
    不做国家过滤：国家标准化与匹配统一在内存里做。
    """
    stmt = (
        select(ShippingRule)
        .where(ShippingRule.shop == shop)
        .options(selectinload(ShippingRule.ranges))
        .order_by(ShippingRule.created_at.desc(), ShippingRule.id)
    )
    return list(db.execute(stmt).scalars().all())


def get_rule_for_shop(db: Session, shop: str, rule_id: str) -> Optional[ShippingRule]:
    """按 id + shop 取；别的店铺的规则同样返回 None。"""
    if not rule_id:
        return None
    stmt = (
        select(ShippingRule)
        .where(ShippingRule.id == rule_id, ShippingRule.shop == shop)
        .options(selectinload(ShippingRule.ranges))
    )
    return db.execute(stmt).scalars().first()


def find_rule_id_by_name(db: Session, shop: str, name: str, *, exclude_id: Optional[str] = None) -> Optional[str]:
    """同店铺重名检查（大小写敏感，精确匹配）。"""
    stmt = select(ShippingRule.id).where(ShippingRule.shop == shop, ShippingRule.name == name)
    if exclude_id:
        stmt = stmt.where(ShippingRule.id != exclude_id)
    return db.execute(stmt.limit(1)).scalars().first()



def _build_ranges(drafts: Sequence[RangeDraft]) -> List[ShippingRange]:
    # 入库前统一排序；调用方必须已经通过 validate_ranges
    return [
        ShippingRange(
            from_val=d.from_val,
            to_val=d.to_val,
            unit=d.unit,
            price_per=d.price_per,
            fee=d.fee,
            fee_unit=d.fee_unit,
        )
        for d in sort_ranges(drafts)
    ]


def insert_rule(db: Session, shop: str, fields: Dict[str, Any], drafts: Sequence[RangeDraft]) -> ShippingRule:
    rule = ShippingRule(shop=shop, **{k: v for k, v in fields.items() if k in RULE_FIELDS})
    rule.ranges = _build_ranges(drafts)
    db.add(rule)
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(rule)
    return rule


'''
整体替换：标量字段 + 全部区间在同一个事务里提交
  - 旧区间通过 delete-orphan 删除，新区间插入，一次 flush 完成
  - 任何一步失败都 rollback，读者不会看到“没有区间”或“新旧混合”的中间态
'''
def replace_rule(db: Session, rule: ShippingRule, fields: Dict[str, Any], drafts: Sequence[RangeDraft]) -> ShippingRule:
    for key, value in fields.items():
        if key in RULE_FIELDS:
            setattr(rule, key, value)
    rule.ranges = _build_ranges(drafts)
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(rule)
    return rule


def delete_rules(db: Session, shop: str, rule_ids: Iterable[str]) -> List[str]:
    """
    批量删除（仅限本店铺的规则），区间随规则级联删除。
    返回实际删除的 id 列表；不属于本店铺 / 不存在的 id 直接忽略。
    """
    ids = [i for i in dict.fromkeys(rule_ids) if i]
    if not ids:
        return []
    stmt = select(ShippingRule).where(ShippingRule.shop == shop, ShippingRule.id.in_(ids))
    rules = list(db.execute(stmt).scalars().all())
    deleted = [r.id for r in rules]
    try:
        for rule in rules:
            db.delete(rule)
        db.commit()
    except Exception:
        db.rollback()
        raise
    logger.info("shipping_rules.deleted shop=%s requested=%s deleted=%s", shop, len(ids), len(deleted))
    return deleted
