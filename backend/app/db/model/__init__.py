# 聚合导入所有模型，供 Alembic 发现

from .shipping_rule import ShippingRule, ShippingRange

__all__ = ["ShippingRule", "ShippingRange"]
