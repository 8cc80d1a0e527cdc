"""
国家下拉列表（仅后台表单用，不参与报价计算）
  - 从 restcountries 拉取 name.common + cca2，按名称排序
  - 进程内缓存 TTL 秒，过期后下一次调用时再拉（允许短时间读到旧数据）
  - 拉取失败返回常用国家兜底列表，兜底结果不进缓存，下次仍会重试
"""
from __future__ import annotations
import logging, time
from typing import Any, Callable, Dict, List, Optional

import requests
from requests import RequestException

from app.core.config import settings


logger = logging.getLogger(__name__)


FALLBACK_COUNTRIES: List[Dict[str, str]] = [
    {"label": "United States", "value": "US"},
    {"label": "China", "value": "CN"},
    {"label": "Canada", "value": "CA"},
    {"label": "United Kingdom", "value": "GB"},
    {"label": "Australia", "value": "AU"},
    {"label": "Germany", "value": "DE"},
    {"label": "France", "value": "FR"},
    {"label": "Japan", "value": "JP"},
]


def _to_options(payload: Any) -> List[Dict[str, str]]:
    rows = payload if isinstance(payload, list) else []
    options: List[Dict[str, str]] = []
    for c in rows:
        if not isinstance(c, dict):
            continue
        value = str(c.get("cca2") or "").strip().upper()
        if not value:
            continue
        name = c.get("name") if isinstance(c.get("name"), dict) else {}
        label = str(name.get("common") or value).strip()
        options.append({"label": label, "value": value})
    options.sort(key=lambda o: o["label"].casefold())
    return options


class CountryCatalog:

    def __init__(
        self,
        url: Optional[str] = None,
        ttl_sec: Optional[int] = None,
        timeout: Optional[int] = None,
        session: Optional[requests.Session] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.url = url or settings.COUNTRY_LIST_URL
        self.ttl_sec = ttl_sec if ttl_sec is not None else settings.COUNTRY_LIST_TTL_SEC
        self.timeout = timeout or settings.COUNTRY_LIST_TIMEOUT
        self._session = session or requests.Session()
        self._clock = clock
        self._cached: Optional[List[Dict[str, str]]] = None
        self._expires_at: float = 0.0


    def list_options(self) -> List[Dict[str, str]]:
        now = self._clock()
        if self._cached is not None and now < self._expires_at:
            return self._cached

        try:
            resp = self._session.get(self.url, timeout=self.timeout)
            resp.raise_for_status()
            options = _to_options(resp.json())
        except (RequestException, ValueError) as e:
            logger.warning("countries.fetch_failed url=%s err=%s", self.url, type(e).__name__)
            return list(FALLBACK_COUNTRIES)

        if not options:
            logger.warning("countries.empty_payload url=%s", self.url)
            return list(FALLBACK_COUNTRIES)

        self._cached = options
        self._expires_at = now + self.ttl_sec
        logger.info("countries.refreshed count=%s ttl_sec=%s", len(options), self.ttl_sec)
        return options


    def invalidate(self) -> None:
        self._cached = None
        self._expires_at = 0.0


# 进程级单例，供路由依赖使用
country_catalog = CountryCatalog()


def get_country_catalog() -> CountryCatalog:
    return country_catalog
