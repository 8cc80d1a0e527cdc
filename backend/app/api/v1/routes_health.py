# 健康检查（含可选 DB 探活）

from fastapi import APIRouter, Query
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from app.db.session import engine

router = APIRouter(tags=["health"])

@router.get("/health")
def health(db: bool = Query(False, description="同时 ping 数据库")):
    if not db:
        return {"status": "ok"}
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        return {"status": "degraded", "db": type(e).__name__}
    return {"status": "ok", "db": "ok"}
