import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from app.core.config import settings
from app.core.logging import configure_logging
from app.api.v1 import api_v1
from app.db.session import dispose_engine
from app.services.shipping.errors import ShippingRuleError

configure_logging()
logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(_app: FastAPI):
    logger.info("app.startup env=%s prefix=%s", settings.ENVIRONMENT, settings.API_PREFIX)
    yield
    dispose_engine()   # 归还连接池


app = FastAPI(title=settings.PROJECT_NAME, lifespan=lifespan)

# 从环境读取前端白名单（逗号分隔）。本地可配：
# BACKEND_CORS_ORIGINS=http://localhost:5173,https://admin.shopify.com
origins = [o.strip() for o in settings.BACKEND_CORS_ORIGINS.split(",") if o.strip()]


app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,     # 配成明确白名单（Shopify Admin 内嵌页 + 本地前端）
    allow_credentials=True,
    allow_methods=["GET","POST","PUT","PATCH","DELETE","OPTIONS"],
    allow_headers=["*"],
    )


# Origin 校验（仅对改数据方法）。放行 Shopify 服务器回调（carrier 报价）
TRUSTED = set(origins)
SERVER_CALLBACK_PREFIXES = (
    settings.API_PREFIX + settings.CARRIER_CALLBACK_PATH,
)

@app.middleware("http")
async def origin_check(request: Request, call_next):
    p = request.url.path

    if p.startswith(SERVER_CALLBACK_PREFIXES):
        # 服务器回调不在浏览器上下文，不适用 Origin 校验
        return await call_next(request)

    if request.method in {"POST", "PUT", "PATCH", "DELETE"}:
        origin = request.headers.get("origin")
        # 没有 Origin（如 curl/健康检查）则放行
        if not origin:
            return await call_next(request)
        # 有 Origin 但不在白名单里，才拒绝
        if origin not in TRUSTED:
            logger.warning("http.bad_origin path=%s origin=%s", p, origin)
            return JSONResponse(status_code=403, content={"error": "Bad Origin"})

    return await call_next(request)


# 规则写路径的领域异常 → {"error","code","fieldErrors"?}
@app.exception_handler(ShippingRuleError)
async def shipping_rule_error_handler(request: Request, exc: ShippingRuleError):
    logger.info("shipping_rules.rejected path=%s code=%s", request.url.path, exc.code)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


app.include_router(api_v1, prefix=settings.API_PREFIX)

# 根路径健康探活（方便测试或 Docker 健康检查）
@app.get("/")
def root():
    return {
        "app": settings.PROJECT_NAME,
        "env": settings.ENVIRONMENT,
        "ok": True
    }
