"""
规则区间的表格导入 / 导出（CSV, UTF-8）

表头固定：Method, countries, from, to, unit, Additional fee, Base fee, Currency Unit
  - 导出：一行一个区间，按 sort_ranges 顺序；Method / countries 每行重复
  - 导入：只解析、不落库，返回预览；前端确认后再调用保存接口（保存时统一校验）
"""
from __future__ import annotations
import csv, io, re
from typing import Any, Dict, List

from app.db.model.shipping_rule import ShippingRule
from app.services.shipping.countries import normalize_countries
from app.services.shipping.errors import MalformedInputError
from app.services.shipping.ranges import ChargeBy, parse_ranges, sort_ranges
from app.utils.serialization import to_jsonable


HEADERS = ["Method", "countries", "from", "to", "unit", "Additional fee", "Base fee", "Currency Unit"]

# 逻辑列 → 表头匹配（大小写不敏感，中间空格可有可无）
_COLUMN_PATTERNS = {
    "method": re.compile(r"^method$", re.I),
    "countries": re.compile(r"^countries$", re.I),
    "from": re.compile(r"^from$", re.I),
    "to": re.compile(r"^to$", re.I),
    "unit": re.compile(r"^unit$", re.I),
    "additional_fee": re.compile(r"^additional\s*fee$", re.I),
    "base_fee": re.compile(r"^base\s*fee$", re.I),
    "currency_unit": re.compile(r"^currency\s*unit$", re.I),
}

# 只支持英文逗号；竖线和全角逗号直接拒绝
_BAD_COUNTRY_DELIMITERS = re.compile(r"[|，]")
COUNTRY_DELIMITER = ","


def export_rule_csv(rule: ShippingRule) -> bytes:
    buf = io.StringIO()
    writer = csv.writer(buf)
    writer.writerow(HEADERS)

    countries_cell = COUNTRY_DELIMITER.join(normalize_countries(rule.countries))
    for rg in sort_ranges(rule.ranges or []):
        writer.writerow([
            rule.charge_by,
            countries_cell,
            to_jsonable(rg.from_val),
            to_jsonable(rg.to_val),
            rg.unit,
            to_jsonable(rg.price_per),
            to_jsonable(rg.fee),
            rg.fee_unit,
        ])
    # 带 BOM，Excel 直接打开不乱码
    return buf.getvalue().encode("utf-8-sig")


def export_filename(rule: ShippingRule) -> str:
    return f"{rule.name or 'shipping-rule'}.csv"


def _locate_columns(header: List[str]) -> Dict[str, int]:
    idx: Dict[str, int] = {}
    for key, pattern in _COLUMN_PATTERNS.items():
        pos = next((i for i, h in enumerate(header) if pattern.match(h.strip())), -1)
        if pos == -1:
            raise MalformedInputError(f"Missing column: {key}")
        idx[key] = pos
    return idx


def _cell(row: List[str], pos: int) -> str:
    return row[pos].strip() if pos < len(row) and row[pos] is not None else ""


def decode_upload(data: bytes) -> str:
    try:
        return data.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise MalformedInputError("File must be UTF-8 encoded CSV") from exc


def parse_countries_cell(cell: str) -> List[str]:
    text = (cell or "").strip()
    if _BAD_COUNTRY_DELIMITERS.search(text):
        raise MalformedInputError("Countries must be separated by an ASCII comma ','")
    if not text:
        return []
    return normalize_countries(text.split(COUNTRY_DELIMITER))


'''
导入预览
  - 每个期望列都必须按名字出现，缺哪列报哪列
  - Method / countries 取第一条数据行；Method 不认识就沿用已有规则的计费方式
  - 区间默认单位按计费方式补齐，币种缺省用 DEFAULT_FEE_UNIT
'''
def import_rule_csv(text: str, existing: ShippingRule) -> Dict[str, Any]:
    rows = [list(r) for r in csv.reader(io.StringIO(text or ""))]
    if not rows:
        raise MalformedInputError("File is empty or not a valid CSV")

    idx = _locate_columns([str(h or "") for h in rows[0]])

    data_rows = [r for r in rows[1:] if any(str(c or "").strip() for c in r)]
    if not data_rows:
        raise MalformedInputError("No data rows to import")

    first = data_rows[0]
    fallback = ChargeBy.parse(existing.charge_by, ChargeBy.WEIGHT)
    charge_by = ChargeBy.parse(_cell(first, idx["method"]), fallback)
    countries = parse_countries_cell(_cell(first, idx["countries"]))

    raw_ranges = [
        {
            "from": _cell(r, idx["from"]),
            "to": _cell(r, idx["to"]),
            "unit": _cell(r, idx["unit"]),
            "pricePer": _cell(r, idx["additional_fee"]),
            "fee": _cell(r, idx["base_fee"]),
            "feeUnit": _cell(r, idx["currency_unit"]),
        }
        for r in data_rows
    ]
    drafts = sort_ranges(parse_ranges(raw_ranges, charge_by.value))

    return {
        "id": existing.id,
        "name": existing.name,   # 导入不改名称
        "chargeBy": charge_by.value,
        "countries": countries,
        "description": existing.description,
        "ranges": [d.as_payload() for d in drafts],
    }
