"""
国家标准化（纯函数）：把各种写法统一成 ISO-3166 alpha-2。
  - 规则保存、规则读取、报价回调三处共用，保证存储与返回一致
  - 查不到的输入原样返回大写去空格形式，不抛错、不丢数据
"""
from __future__ import annotations
import re
from typing import Any, Dict, List, Mapping


_WS = re.compile(r"\s+")


def _aliases(code: str, *names: str) -> Dict[str, str]:
    return {name: code for name in (code, *names)}


# key 已经是“大写 + 去掉所有空白”的形式
COUNTRY_ALIASES: Dict[str, str] = {
    **_aliases("CN", "CHN", "CHINA", "中国", "中國"),
    **_aliases("US", "USA", "UNITEDSTATES", "UNITEDSTATESOFAMERICA", "美国", "美國"),
    **_aliases("CA", "CAN", "CANADA", "加拿大"),
    **_aliases("GB", "UK", "GBR", "UNITEDKINGDOM", "GREATBRITAIN", "英国", "英國"),
    **_aliases("DE", "DEU", "GERMANY", "德国", "德國"),
    **_aliases("FR", "FRA", "FRANCE", "法国", "法國"),
    **_aliases("AU", "AUS", "AUSTRALIA", "澳大利亚", "澳大利亞", "澳洲"),
    **_aliases("JP", "JPN", "JAPAN", "日本"),
    **_aliases("HK", "HKG", "HONGKONG", "香港"),
    **_aliases("MO", "MAC", "MACAU", "MACAO", "澳门", "澳門"),
    **_aliases("TW", "TWN", "TAIWAN", "台湾", "臺灣", "台灣"),
}


def normalize_country(value: Any) -> str:
    """
    单个国家标识 → ISO2。
    空值返回 ""；命中别名表返回标准码；否则返回大写去空白后的原值。
    """
    if value is None:
        return ""
    raw = str(value).strip()
    if not raw:
        return ""
    key = _WS.sub("", raw.upper())
    return COUNTRY_ALIASES.get(key, key)


def coerce_country_entry(entry: Any) -> str:
    """前端可能传字符串，也可能传 {code|value|label} 对象；统一取出一个字符串。"""
    if isinstance(entry, Mapping):
        for key in ("code", "value", "label"):
            val = entry.get(key)
            if val:
                return str(val)
        return ""
    if entry is None:
        return ""
    return str(entry)


def normalize_countries(entries: Any) -> List[str]:
    """
    国家列表入口：任意形态 → 标准化后的字符串列表（保序，去掉空值）。
    非列表输入视为空列表。
    """
    if not isinstance(entries, (list, tuple)):
        return []
    out: List[str] = []
    for entry in entries:
        code = normalize_country(coerce_country_entry(entry))
        if code:
            out.append(code)
    return out


def contains_country(countries: Any, destination: str) -> bool:
    """报价时判断目的国是否在规则的国家列表里（两边都按标准化后的 ISO2 比较）。"""
    if not destination:
        return False
    return destination in normalize_countries(countries)
