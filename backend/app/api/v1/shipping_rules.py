from __future__ import annotations
import json, logging
from typing import Any

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.services.auth_service import get_current_shop
from app.services.shipping import rule_service
from app.services.shipping.errors import MalformedInputError


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/shipping/rules", tags=["shipping-rules"])


async def _read_json_object(request: Request) -> dict[str, Any]:
    # body 形状交给 service 校验；这里只保证是 JSON 对象，否则 400
    raw = await request.body()
    try:
        payload = json.loads(raw.decode("utf-8")) if raw else None
    except (UnicodeDecodeError, ValueError) as exc:
        raise MalformedInputError("Invalid JSON payload") from exc
    if not isinstance(payload, dict):
        raise MalformedInputError("Request body must be an object")
    return payload


@router.get("")
def list_shipping_rules(
    db: Session = Depends(get_db),
    shop: str = Depends(get_current_shop),
):
    return {"rules": rule_service.list_rules(db, shop)}


"""
创建 / 整体更新（带 id 即更新）。
失败时抛出的 ShippingRuleError 由全局 handler 转成 {"error","code","fieldErrors"}。
"""
@router.post("")
async def save_shipping_rule(
    request: Request,
    db: Session = Depends(get_db),
    shop: str = Depends(get_current_shop),
):
    payload = await _read_json_object(request)
    rule, created = rule_service.save_rule(db, shop, payload)
    body: dict[str, Any] = {"rule": rule_service.serialize_rule(rule)}
    body["created" if created else "updated"] = True
    return body


@router.post("/delete")
async def delete_shipping_rules(
    request: Request,
    db: Session = Depends(get_db),
    shop: str = Depends(get_current_shop),
):
    payload = await _read_json_object(request)
    deleted = rule_service.delete_rules_batch(db, shop, payload.get("ids"))
    return {"deleted": deleted, "count": len(deleted)}


@router.delete("/{rule_id}")
def delete_shipping_rule(
    rule_id: str,
    db: Session = Depends(get_db),
    shop: str = Depends(get_current_shop),
):
    deleted_id = rule_service.delete_rule(db, shop, rule_id)
    return {"deleted": True, "id": deleted_id}
