"""Shared fixtures: SQLite-backed session and a TestClient with auth/DB overrides."""

from __future__ import annotations

from typing import Iterator

import pytest
from fastapi.testclient import TestClient
from pydantic import SecretStr
from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.config import settings
from app.db.base import Base
import app.db.model  # noqa: F401  注册模型到 Base.metadata


TEST_SHOP = "demo-shop.myshopify.com"
TEST_SECRET = "test-app-secret"
TEST_API_KEY = "test-api-key"


@pytest.fixture(autouse=True)
def app_secrets(monkeypatch):
    """每个测试都用固定的 App secret / API key，避免读到本机 .env。"""
    monkeypatch.setattr(settings, "SHOPIFY_API_SECRET", SecretStr(TEST_SECRET))
    monkeypatch.setattr(settings, "SHOPIFY_API_KEY", TEST_API_KEY)
    monkeypatch.setattr(settings, "DEV_SKIP_HMAC", False)
    monkeypatch.setattr(settings, "DEFAULT_CURRENCY", "CNY")
    monkeypatch.setattr(settings, "DEFAULT_FEE_UNIT", "CNY")
    monkeypatch.setattr(settings, "CARRIER_SERVICE_CODE_PREFIX", "RRC")


@pytest.fixture()
def engine():
    # 内存 SQLite + StaticPool：同一个连接贯穿整个测试，TestClient 的线程也能看到数据
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(eng, "connect")
    def _fk_on(dbapi_conn, _record):
        dbapi_conn.execute("PRAGMA foreign_keys=ON")

    Base.metadata.create_all(bind=eng)
    try:
        yield eng
    finally:
        Base.metadata.drop_all(bind=eng)
        eng.dispose()


@pytest.fixture()
def session_factory(engine) -> sessionmaker:
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)


@pytest.fixture()
def db_session(session_factory) -> Iterator[Session]:
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def client(session_factory) -> Iterator[TestClient]:
    """
    整个应用（含中间件、异常 handler），覆盖：
      - get_db → SQLite 会话
      - get_current_shop → 固定店铺（鉴权本身在 test_auth_service 里单独测）
    """
    from app.main import app
    from app.db.session import get_db
    from app.services.auth_service import get_current_shop

    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_current_shop] = lambda: TEST_SHOP
    try:
        with TestClient(app) as c:
            yield c
    finally:
        app.dependency_overrides.clear()
