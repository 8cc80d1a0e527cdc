"""
   运费规则写路径专用异常类型。
   每个异常自带 code / status_code / to_dict()，路由层直接转成结构化 JSON，
   调用方可以据此定位到具体字段或区间下标。
"""
from __future__ import annotations
from typing import Any, Dict, List, Optional


class ShippingRuleError(Exception):
    """Base for all shipping-rule write errors."""

    code = "ERROR"
    status_code = 400

    def __init__(self, message: str, *, field_errors: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.field_errors = field_errors

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"error": self.message, "code": self.code}
        if self.field_errors:
            body["fieldErrors"] = self.field_errors
        return body


class MalformedInputError(ShippingRuleError):
    """Missing required fields, bad JSON shape or an unreadable spreadsheet."""

    code = "BAD_REQUEST"
    status_code = 400


class RuleNotFoundError(ShippingRuleError):
    """Rule id absent, or owned by another shop (callers can't tell which)."""

    code = "NOT_FOUND"
    status_code = 404

    def __init__(self, message: str = "Rule not found or not permitted") -> None:
        super().__init__(message)


class RuleNameConflictError(ShippingRuleError):
    """Another rule of the same shop already uses this name."""

    code = "NAME_DUPLICATE"
    status_code = 409

    def __init__(self, name: str) -> None:
        super().__init__(f"Rule name already exists: {name}")
        self.name = name


class RangeValidationError(ShippingRuleError):
    """Range table breaks one or more invariants; carries every violation."""

    code = "INVALID_RANGES"
    status_code = 422

    def __init__(self, errors: List[Dict[str, Any]]) -> None:
        super().__init__("Invalid range settings", field_errors={"ranges": list(errors)})
        self.errors = list(errors)
