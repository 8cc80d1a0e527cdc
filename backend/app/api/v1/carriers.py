from __future__ import annotations
import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException
from requests import RequestException
from sqlalchemy.orm import Session

from app.core.config import settings
from app.db.session import get_db
from app.integrations.shopify.shopify_client import ShopifyAPIError, ShopifyClient, find_duplicate_services
from app.repository.shipping_rule_repo import list_rules_for_shop
from app.services.auth_service import get_current_shop
from app.services.shipping.rule_service import rules_brief


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/carriers", tags=["carriers"])


def get_shopify_client(shop: str = Depends(get_current_shop)) -> ShopifyClient:
    return ShopifyClient(shop=shop)


def _callback_url_or_400() -> str:
    url = settings.carrier_callback_url
    if not url:
        raise HTTPException(status_code=400, detail="SHOPIFY_APP_URL is not configured")
    return url


def _upstream_error(e: Exception) -> HTTPException:
    status = getattr(e, "status", None)
    logger.warning("carriers.shopify_failed status=%s err=%s", status, type(e).__name__)
    return HTTPException(status_code=502, detail=f"Shopify request failed: {e}")


@router.get("")
def list_carriers(client: ShopifyClient = Depends(get_shopify_client)):
    try:
        services = client.list_carrier_services()
    except (ShopifyAPIError, RequestException) as e:
        raise _upstream_error(e)
    return {"carriers": services}


"""注册 / 更新本应用的 CarrierService（幂等）；回调地址由 SHOPIFY_APP_URL 拼出。"""
@router.post("/ensure")
def ensure_carrier(client: ShopifyClient = Depends(get_shopify_client)):
    callback_url = _callback_url_or_400()
    try:
        result = client.ensure_carrier_service(settings.CARRIER_SERVICE_NAME, callback_url)
    except (ShopifyAPIError, RequestException) as e:
        raise _upstream_error(e)
    logger.info("carriers.ensure shop=%s action=%s id=%s", client.shop, result.get("action"), result.get("id"))
    return result


'''
诊断：
  - 回调地址是否配置 / 是否 https（Shopify 只接受 https）
  - 已注册的同名服务是否重复
  - 本店铺每条规则的覆盖摘要（国家数、区间数、第一段区间）
  Shopify 调用失败不影响其余诊断项，错误写在 shopifyError 里
'''
@router.get("/diagnose")
def diagnose_carriers(
    client: ShopifyClient = Depends(get_shopify_client),
    db: Session = Depends(get_db),
):
    callback_url = settings.carrier_callback_url
    report: Dict[str, Any] = {
        "shop": client.shop,
        "serviceName": settings.CARRIER_SERVICE_NAME,
        "callbackUrl": callback_url,
        "callbackIsHttps": bool(callback_url and callback_url.startswith("https://")),
        "hmacSkipped": settings.DEV_SKIP_HMAC,
    }

    try:
        services = client.list_carrier_services()
        report["carriers"] = services
        report["duplicates"] = find_duplicate_services(services)
        report["registered"] = any(
            s.get("name") == settings.CARRIER_SERVICE_NAME and s.get("callback_url") == callback_url
            for s in services
        )
    except (ShopifyAPIError, RequestException) as e:
        logger.warning("carriers.diagnose.shopify_failed shop=%s err=%s", client.shop, type(e).__name__)
        report.update({"carriers": [], "duplicates": [], "registered": False, "shopifyError": str(e)})

    report["rules"] = rules_brief(list_rules_for_shop(db, client.shop))
    return report
