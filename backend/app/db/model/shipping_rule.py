# 运费规则 + 区间表（一条规则拥有一组有序区间）

from __future__ import annotations
import uuid
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import ForeignKey, Integer, JSON, Numeric, String, Text, DateTime, UniqueConstraint, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship
from app.db.base import Base


# PostgreSQL 上用 JSONB；测试用的 SQLite 退回通用 JSON
CountriesType = JSON().with_variant(JSONB(), "postgresql")


def _new_rule_id() -> str:
    return str(uuid.uuid4())


'''
运费规则（按店铺隔离）
    - charge_by: weight / volume / quantity，决定用哪一个汇总量去匹配区间
    - countries: 标准化后的 ISO2 列表（写入、读取时都会再做一次标准化）
    - ranges: 整体替换，不做逐条 diff
'''
class ShippingRule(Base):

    __tablename__ = "shipping_rules"
    __table_args__ = (
        UniqueConstraint("shop", "name", name="uq_shipping_rules_shop_name"),
    )

    id:          Mapped[str]           = mapped_column(String(36), primary_key=True, default=_new_rule_id)
    shop:        Mapped[str]           = mapped_column(String(255), nullable=False, index=True)   # xxx.myshopify.com
    name:        Mapped[str]           = mapped_column(String(255), nullable=False)
    charge_by:   Mapped[str]           = mapped_column(String(16), nullable=False, default="weight")
    countries:   Mapped[List[str]]     = mapped_column(CountriesType, nullable=False, default=list)
    description: Mapped[Optional[str]] = mapped_column(Text)

    created_at: Mapped[object] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at: Mapped[object] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    ranges: Mapped[List["ShippingRange"]] = relationship(
        back_populates="rule",
        cascade="all, delete-orphan",
        order_by=lambda: [ShippingRange.from_val, ShippingRange.to_val],
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<ShippingRule id={self.id} shop={self.shop} name={self.name!r} charge_by={self.charge_by}>"


"""
   区间：from_val ~ to_val 两端闭区间；price = price_per * 计量值 + fee
"""
class ShippingRange(Base):

    __tablename__ = "shipping_ranges"

    id:        Mapped[int]     = mapped_column(Integer, primary_key=True, autoincrement=True)
    rule_id:   Mapped[str]     = mapped_column(ForeignKey("shipping_rules.id", ondelete="CASCADE"), nullable=False, index=True)

    from_val:  Mapped[Decimal] = mapped_column(Numeric(14, 4), nullable=False)
    to_val:    Mapped[Decimal] = mapped_column(Numeric(14, 4), nullable=False)
    unit:      Mapped[str]     = mapped_column(String(16), nullable=False, default="KG")     # KG / CBM / PCS
    price_per: Mapped[Decimal] = mapped_column(Numeric(14, 4), nullable=False, default=0)    # 单价（Additional fee）
    fee:       Mapped[Decimal] = mapped_column(Numeric(14, 4), nullable=False, default=0)    # 固定费（Base fee）
    fee_unit:  Mapped[str]     = mapped_column(String(8), nullable=False, default="CNY")     # 币种

    rule: Mapped[ShippingRule] = relationship(back_populates="ranges")
