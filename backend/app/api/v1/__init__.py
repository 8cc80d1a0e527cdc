from fastapi import APIRouter, Depends
from app.services.auth_service import get_current_shop


# 非受保护路由（Shopify 服务器回调 / 探活）
from .routes_health import router as health_router
from .carrier_callback import router as carrier_callback_router


# 需要 session token 的后台路由
from .shipping_rules import router as shipping_rules_router
from .shipping_files import router as shipping_files_router
from .countries import router as countries_router
from .carriers import router as carriers_router


api_v1 = APIRouter()
api_v1.include_router(health_router)             # /health 不需要登录
api_v1.include_router(carrier_callback_router)   # /carrier/callback 走 HMAC，不走 session token

# --- 需要登录的接口 ---
protected = APIRouter(dependencies=[Depends(get_current_shop)])

protected.include_router(shipping_rules_router)
protected.include_router(shipping_files_router)
protected.include_router(countries_router)
protected.include_router(carriers_router)

# 把受保护路由注册进主路由
api_v1.include_router(protected)
