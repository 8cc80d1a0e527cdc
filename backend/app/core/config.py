# 环境变量和配置
# pydantic‑settings 读取 .env = core/config.py

from typing import Optional
from pydantic import SecretStr, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


# 本机直接跑 uvicorn 时（不走 Docker），才会用到 model_config.env_file=".env"：
# 此时它会读取 backend/.env

class Settings(BaseSettings):

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        env_prefix="",
        case_sensitive=False,
        populate_by_name=True,
    )

    # ========= project config =========
    PROJECT_NAME: str = "Range Rate Carrier"
    ENVIRONMENT: str = "dev"
    API_PREFIX: str = "/api/v1"
    BACKEND_CORS_ORIGINS: str = "http://localhost:5173"


    # ========= Database =========
    # 容器内默认连 docker 网络里的 "db" 服务；本机工具可用 DATABASE_URL_LOCAL
    DATABASE_URL: str = Field(
        default="postgresql+psycopg://rrc_user:rrc_pass@db:5432/range_rate_carrier",
        alias="DATABASE_URL",
    )
    DATABASE_URL_LOCAL: Optional[str] = Field(
        default=None,
        alias="DATABASE_URL_LOCAL",
        description="Optional local URL for tools (e.g., DBeaver/psql).",
    )


    # ========= Shopify App =========
    SHOPIFY_API_KEY: str = Field("", alias="SHOPIFY_API_KEY")                        # session token 的 aud
    SHOPIFY_API_SECRET: SecretStr = Field(SecretStr(""), alias="SHOPIFY_API_SECRET")  # HMAC / session token 共用
    DEV_SKIP_HMAC: bool = Field(False, alias="DEV_SKIP_HMAC")                         # 仅本地隧道联调时打开
    SHOPIFY_APP_URL: Optional[str] = Field(None, alias="SHOPIFY_APP_URL")             # 公网 https 地址，拼回调 URL

    # Admin REST（注册 CarrierService 用）
    SHOPIFY_SHOP: str = Field("range-rate-carrier.myshopify.com", alias="SHOPIFY_SHOP")
    SHOPIFY_ADMIN_TOKEN: Optional[SecretStr] = Field(None, alias="SHOPIFY_ADMIN_TOKEN")
    SHOPIFY_API_VERSION: str = Field("2025-07", alias="SHOPIFY_API_VERSION")

    # 网络/HTTP 层 配置
    SHOPIFY_HTTP_TIMEOUT: int = Field(30, alias="SHOPIFY_HTTP_TIMEOUT")
    SHOPIFY_HTTP_RETRIES: int = Field(3, alias="SHOPIFY_HTTP_RETRIES")
    SHOPIFY_HTTP_BACKOFF_MS: int = Field(200, alias="SHOPIFY_HTTP_BACKOFF_MS")


    # ========= Carrier service / 报价 =========
    CARRIER_SERVICE_NAME: str = Field("Range Rate Carrier", alias="CARRIER_SERVICE_NAME")
    CARRIER_CALLBACK_PATH: str = "/carrier/callback"
    CARRIER_SERVICE_CODE_PREFIX: str = Field("RRC", alias="CARRIER_SERVICE_CODE_PREFIX")
    DEFAULT_CURRENCY: str = Field("CNY", alias="DEFAULT_CURRENCY")   # 报价币种兜底
    DEFAULT_FEE_UNIT: str = Field("CNY", alias="DEFAULT_FEE_UNIT")   # 区间未填币种时的默认值


    # ========= 国家列表（仅后台下拉用） =========
    COUNTRY_LIST_URL: str = Field(
        "https://restcountries.com/v3.1/all?fields=name,cca2",
        alias="COUNTRY_LIST_URL",
    )
    COUNTRY_LIST_TTL_SEC: int = Field(6 * 3600, ge=60, alias="COUNTRY_LIST_TTL_SEC")
    COUNTRY_LIST_TIMEOUT: int = Field(10, ge=1, alias="COUNTRY_LIST_TIMEOUT")


    @property
    def shopify_secret(self) -> str:
        secret = self.SHOPIFY_API_SECRET
        if hasattr(secret, "get_secret_value"):
            secret = secret.get_secret_value()
        return secret or ""

    @property
    def carrier_callback_url(self) -> Optional[str]:
        if not self.SHOPIFY_APP_URL:
            return None
        return self.SHOPIFY_APP_URL.rstrip("/") + self.API_PREFIX + self.CARRIER_CALLBACK_PATH


settings = Settings()  # 只从环境读取（含 .env）
