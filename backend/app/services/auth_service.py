from typing import Optional

from fastapi import Header, HTTPException, status
from app.core.security import decode_session_token, shop_from_claims


BEARER_PREFIX = "bearer "


'''
获取当前店铺
    - 后台页面由 App Bridge 注入 Authorization: Bearer <session token>
    - decode_session_token(...) 校验签名 / 过期 / aud
    - 读出 dest 作为 shop；任何一步失败都 401
'''
def get_current_shop(authorization: Optional[str] = Header(default=None)) -> str:
    """从 Authorization 头取 session token 并解析出店铺域名"""
    raw = (authorization or "").strip()
    if not raw.lower().startswith(BEARER_PREFIX):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")

    claims = decode_session_token(raw[len(BEARER_PREFIX):].strip())
    if not claims:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")

    shop = shop_from_claims(claims)
    if not shop:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")
    return shop
