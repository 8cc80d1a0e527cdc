
from __future__ import annotations
import base64, hashlib, hmac, logging
from datetime import datetime, timedelta, timezone
from typing import Any, Optional
from urllib.parse import urlparse

from jose import jwt, JWTError
from app.core.config import settings


logger = logging.getLogger(__name__)
ALGORITHM = "HS256"


# =============== Shopify HMAC（carrier 回调 / webhook 签名） ===============
def compute_hmac_base64(secret: str, raw_body: bytes) -> str:
    digest = hmac.new(secret.encode("utf-8"), raw_body, hashlib.sha256).digest()
    return base64.b64encode(digest).decode()


def verify_shopify_hmac(provided_hmac_b64: Optional[str], raw_body: bytes, secret: Optional[str] = None) -> bool:
    """签名缺失、密钥未配置或不一致都返回 False；比较用 compare_digest。"""
    if not provided_hmac_b64:
        return False
    secret = settings.shopify_secret if secret is None else secret
    if not secret:
        logger.error("security.hmac.secret_missing")
        return False
    expected = compute_hmac_base64(secret, raw_body)
    return hmac.compare_digest(provided_hmac_b64.encode("utf-8"), expected.encode("utf-8"))


'''
App Bridge session token（后台页面 → 本服务）
  - Shopify 用 App secret 以 HS256 签名，aud = API key
  - dest 形如 https://xxx.myshopify.com，取 netloc 作为 shop
  - 解码失败统一返回 None，由依赖层决定 401
'''
def decode_session_token(token: str) -> Optional[dict[str, Any]]:
    options = {"verify_aud": bool(settings.SHOPIFY_API_KEY)}
    try:
        return jwt.decode(
            token,
            settings.shopify_secret,
            algorithms=[ALGORITHM],
            audience=settings.SHOPIFY_API_KEY or None,
            options=options,
        )
    except JWTError:
        return None


def shop_from_claims(claims: dict[str, Any]) -> Optional[str]:
    dest = str(claims.get("dest") or "").strip()
    if not dest:
        return None
    host = urlparse(dest).netloc if "://" in dest else dest
    return host.lower() or None


def create_session_token(shop: str, expires_in_sec: int = 60) -> str:
    """本地脚本/测试用：按 Shopify 的格式签一枚 session token。"""
    now = datetime.now(tz=timezone.utc)
    claims = {
        "iss": f"https://{shop}/admin",
        "dest": f"https://{shop}",
        "sub": "1",
        "iat": int(now.timestamp()),
        "nbf": int(now.timestamp()),
        "exp": int((now + timedelta(seconds=expires_in_sec)).timestamp()),
    }
    if settings.SHOPIFY_API_KEY:
        claims["aud"] = settings.SHOPIFY_API_KEY
    return jwt.encode(claims, settings.shopify_secret, algorithm=ALGORITHM)
