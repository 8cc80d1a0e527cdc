from __future__ import annotations

import logging
from urllib.parse import quote
from fastapi import APIRouter, Depends, File, Response, UploadFile

from sqlalchemy.orm import Session
from app.db.session import get_db
from app.services.auth_service import get_current_shop
from app.services.shipping import rule_service
from app.services.shipping.spreadsheet import (
    decode_upload,
    export_filename,
    export_rule_csv,
    import_rule_csv,
)


logger = logging.getLogger(__name__)


router = APIRouter(prefix="/shipping/rules", tags=["shipping-files"])


"""导出某条规则的区间表（CSV 附件）。"""
@router.get("/{rule_id}/export")
def export_shipping_rule(
    rule_id: str,
    db: Session = Depends(get_db),
    shop: str = Depends(get_current_shop),
):
    rule = rule_service.get_rule(db, shop, rule_id)
    content = export_rule_csv(rule)
    filename = export_filename(rule)
    logger.info("shipping_rules.exported shop=%s id=%s ranges=%s", shop, rule.id, len(rule.ranges or []))

    # RFC 5987：中文规则名也能作为下载文件名
    quoted = quote(filename)
    return Response(
        content=content,
        media_type="text/csv; charset=utf-8",
        headers={
            "Content-Disposition": f"attachment; filename=\"shipping-rule.csv\"; filename*=UTF-8''{quoted}",
            "Cache-Control": "no-store",
        },
    )


"""上传 CSV，只返回预览，不落库；前端确认后再走保存接口。"""
@router.post("/{rule_id}/import")
async def import_shipping_rule(
    rule_id: str,
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    shop: str = Depends(get_current_shop),
):
    rule = rule_service.get_rule(db, shop, rule_id)
    text = decode_upload(await file.read())
    preview = import_rule_csv(text, rule)
    logger.info(
        "shipping_rules.import_preview shop=%s id=%s file=%s ranges=%s",
        shop, rule.id, file.filename, len(preview["ranges"]),
    )
    return {"rule": preview, "imported": True, "persisted": False}
