
"""面向 Admin REST 的轻量 Client, 只放 CarrierService 注册相关的方法"""
from __future__ import annotations

import time, logging, requests
from typing import Any, Dict, List, Optional
from requests import HTTPError, Timeout, RequestException

from app.core.config import settings


logger = logging.getLogger(__name__)


# ---------------- 基础：端点 & 认证 ----------------

def _rest_endpoint(shop: str, path: str) -> str:
    # myshopify 域名 + 版本拼接 REST Admin API 端点，path 形如 carrier_services.json
    return f"https://{shop}/admin/api/{settings.SHOPIFY_API_VERSION}/{path.lstrip('/')}"


def _auth_headers(token: Any) -> dict:
    # 兼容 SecretStr 或 str
    if hasattr(token, "get_secret_value"):
        token = token.get_secret_value()
    return {
        "Content-Type": "application/json",
        "Accept": "application/json",
        "X-Shopify-Access-Token": token or "",
        "User-Agent": "RangeRateCarrier/ShopifyClient (+python)",
    }


class ShopifyAPIError(RuntimeError):
    """REST 调用最终失败（已重试）；保留状态码与响应文本便于诊断页展示。"""

    def __init__(self, message: str, *, status: Optional[int] = None, body: str = "") -> None:
        super().__init__(message)
        self.status = status
        self.body = body


def _brief(service: Dict[str, Any]) -> Dict[str, Any]:
    # 仅输出关键字段
    return {
        "id": service.get("id"),
        "name": service.get("name") or service.get("service_name"),
        "callback_url": service.get("callback_url"),
        "service_discovery": service.get("service_discovery"),
    }


class ShopifyClient:

    def __init__(
        self,
        shop: Optional[str] = None,
        access_token: Any = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.shop = shop or settings.SHOPIFY_SHOP
        self.access_token = access_token if access_token is not None else settings.SHOPIFY_ADMIN_TOKEN
        self._session = session or requests.Session()


    '''
    通用 REST 调用（带日志 + 重试)
        1) HTTP 5xx / 网络异常 / 超时：指数退避重试
        2) 429：优先按 Retry-After 退避
        3) 其它 4xx：不重试，直接抛 ShopifyAPIError（带 status/body）
        返回解析后的 JSON（DELETE 等空响应返回 {}）
    '''
    def _request(
        self,
        method: str,
        path: str,
        *,
        json_body: Optional[dict] = None,
        timeout: Optional[int] = None,
        op_name: str = "",
    ) -> dict:

        timeout = timeout or getattr(settings, "SHOPIFY_HTTP_TIMEOUT", 30)
        max_retries = max(0, int(getattr(settings, "SHOPIFY_HTTP_RETRIES", 3)))
        backoff_ms = max(50, int(getattr(settings, "SHOPIFY_HTTP_BACKOFF_MS", 200)))
        url = _rest_endpoint(self.shop, path)

        for attempt in range(max_retries + 1):
            start = time.perf_counter()
            try:
                resp = self._session.request(
                    method,
                    url,
                    headers=_auth_headers(self.access_token),
                    json=json_body,
                    timeout=timeout,
                )
                latency_ms = int((time.perf_counter() - start) * 1000)

                try:
                    resp.raise_for_status()
                except HTTPError:
                    status = resp.status_code

                    if status == 429 and attempt < max_retries:
                        retry_after = resp.headers.get("Retry-After")
                        try:
                            sleep_s = max(0.1, float(retry_after))
                        except (TypeError, ValueError):
                            sleep_s = (backoff_ms / 1000.0) * (2 ** attempt)
                        logger.warning(
                            "shopify.rest.429_throttled op=%s latency_ms=%s attempt=%s/%s retry_after=%s",
                            op_name, latency_ms, attempt, max_retries, retry_after)
                        time.sleep(sleep_s)
                        continue

                    logger.warning(
                        "shopify.rest.http_error op=%s status=%s latency_ms=%s attempt=%s/%s",
                        op_name, status, latency_ms, attempt, max_retries)

                    if 500 <= status < 600 and attempt < max_retries:
                        time.sleep((backoff_ms / 1000.0) * (2 ** attempt))
                        continue
                    raise ShopifyAPIError(
                        f"Shopify REST {method} {path} failed: status={status}",
                        status=status,
                        body=(resp.text or "")[:500],
                    )

                logger.info("shopify.rest.ok op=%s status=%s latency_ms=%s attempt=%s",
                    op_name, resp.status_code, latency_ms, attempt)
                if not (resp.content or b"").strip():
                    return {}
                try:
                    return resp.json()
                except ValueError as e:
                    raise ShopifyAPIError(
                        f"Shopify REST response is not JSON: status={resp.status_code}",
                        status=resp.status_code,
                        body=(resp.text or "")[:500],
                    ) from e

            except Timeout:
                latency_ms = int((time.perf_counter() - start) * 1000)
                logger.warning("shopify.rest.timeout op=%s latency_ms=%s attempt=%s/%s",
                    op_name, latency_ms, attempt, max_retries)
                if attempt == max_retries:
                    raise
                time.sleep((backoff_ms / 1000.0) * (2 ** attempt))

            except RequestException as e:
                latency_ms = int((time.perf_counter() - start) * 1000)
                logger.warning("shopify.rest.request_exception op=%s latency_ms=%s attempt=%s/%s err=%s",
                    op_name, latency_ms, attempt, max_retries, type(e).__name__)
                if attempt == max_retries:
                    raise
                time.sleep((backoff_ms / 1000.0) * (2 ** attempt))

        raise ShopifyAPIError(f"Shopify REST {method} {path} exhausted retries")


    # ---------------- CarrierService ----------------
    def list_carrier_services(self) -> List[Dict[str, Any]]:
        data = self._request("GET", "carrier_services.json", op_name="carrier_service.list")
        services = data.get("carrier_services") or []
        return [_brief(s) for s in services if isinstance(s, dict)]


    '''
    确保 CarrierService 存在且回调地址正确：
      - 不存在：创建（Shopify 返回 422 "already configured" 时视为已存在）
      - 已存在：PUT 更新 name / callback_url / service_discovery
      返回 {action, id, name, callback_url}
    '''
    def ensure_carrier_service(self, name: str, callback_url: str) -> Dict[str, Any]:
        body = {"carrier_service": {"name": name, "callback_url": callback_url, "service_discovery": True}}
        existing = next((s for s in self.list_carrier_services() if s.get("name") == name), None)

        if existing is None:
            try:
                created = self._request("POST", "carrier_services.json", json_body=body, op_name="carrier_service.create")
            except ShopifyAPIError as e:
                if e.status == 422 and "already configured" in (e.body or "").lower():
                    logger.info("shopify.carrier_service.already_configured name=%s", name)
                    return {"action": "noop", "id": None, "name": name, "callback_url": callback_url}
                raise
            node = created.get("carrier_service") or {}
            return {"action": "created", "id": node.get("id"), "name": name, "callback_url": callback_url}

        if existing.get("callback_url") == callback_url and existing.get("service_discovery"):
            return {"action": "noop", "id": existing.get("id"), "name": name, "callback_url": callback_url}

        self._request(
            "PUT",
            f"carrier_services/{existing['id']}.json",
            json_body=body,
            op_name="carrier_service.update",
        )
        return {"action": "updated", "id": existing.get("id"), "name": name, "callback_url": callback_url}


    def delete_carrier_service(self, service_id: Any) -> None:
        self._request("DELETE", f"carrier_services/{service_id}.json", op_name="carrier_service.delete")


def find_duplicate_services(services: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """按名称分组，返回出现多次的服务（诊断页用）。"""
    groups: Dict[str, List[Dict[str, Any]]] = {}
    for s in services:
        key = str(s.get("name") or "").strip()
        groups.setdefault(key, []).append(s)
    return [
        {"name": key, "count": len(items), "items": items}
        for key, items in groups.items()
        if len(items) > 1
    ]
