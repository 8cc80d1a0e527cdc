# app/api/v1/carrier_callback.py

from __future__ import annotations
import json, logging
from fastapi import APIRouter, Depends, Header, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.security import verify_shopify_hmac
from app.db.session import get_db
from app.services.shipping.rate_engine import quote_for_shop


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/carrier", tags=["carrier"])


'''
Shopify 结账时同步调用的运费回调（CarrierService callback_url）
  1) 先读原始 body 做 HMAC 校验，校验失败直接 401，不解析 JSON
  2) 再解析 JSON；解析失败 400
  3) 店铺取 X-Shopify-Shop-Domain；缺失时返回空 rates（Shopify 会隐藏本承运商）
  4) 报价只读库，不写库；没有命中的规则也是正常结果
     body 示例：
     {"rate": {"destination": {"country": "US"}, "items": [{"grams": 1500, "quantity": 1}], "currency": "USD"}}
'''
@router.post("/callback")
async def carrier_callback(
    request: Request,
    x_shopify_hmac_sha256: str = Header(default=""),
    x_shopify_shop_domain: str = Header(default=""),
    db: Session = Depends(get_db),
):
    raw = await request.body()

    if settings.DEV_SKIP_HMAC:
        logger.warning("carrier.callback.hmac_skipped shop=%s (DEV_SKIP_HMAC=true)", x_shopify_shop_domain)
    elif not verify_shopify_hmac(x_shopify_hmac_sha256, raw):
        logger.warning("carrier.callback.hmac_failed shop=%s", x_shopify_shop_domain)
        return JSONResponse(status_code=401, content={"error": "HMAC validation failed"})

    try:
        payload = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, ValueError):
        return JSONResponse(status_code=400, content={"error": "Invalid JSON payload"})

    shop = (x_shopify_shop_domain or "").strip().lower()
    if not shop:
        logger.warning("carrier.callback.missing_shop")
        return {"rates": []}

    rates = quote_for_shop(db, shop, payload)
    return {"rates": [r.to_dict() for r in rates]}


# 便于在浏览器 / 隧道里确认回调地址可达
@router.get("/callback")
def carrier_callback_ping():
    return {"ok": True}
