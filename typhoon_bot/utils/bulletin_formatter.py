"""
Human-readable (Japanese) bulletin text.
"""

from datetime import datetime
from typing import Dict, Any, Iterable, Optional
from zoneinfo import ZoneInfo

from ..models.data_models import CycloneRecord


JST = ZoneInfo("Asia/Tokyo")

NO_CYCLONES_TEXT = "現在、台風または今後台風になると予想される熱帯低気圧は発生していません。"

FOOTER_TEXT = (
    "最新の台風情報については気象庁ホームページ "
    "https://www.jma.go.jp/bosai/map.html#contents=typhoon を参照してください。"
)


def format_date(jst: str) -> str:
    """`2024-08-01T10:00:00+09:00` -> `2024年8月1日 10時00分`"""
    dt = datetime.fromisoformat(jst)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=JST)
    dt = dt.astimezone(JST)
    return f"{dt.year}年{dt.month}月{dt.day}日 {dt.hour}時{dt.minute:02d}分"


def format_cyclone_name(header: Dict[str, Any]) -> str:
    number = header.get("typhoonNumber", "")
    if header.get("name") is not None:
        # "2410" -> "台風10号"
        name = f"台風{number[2:]}号"
        if header.get("category", {}).get("jp") == "熱帯低気圧":
            return name + "(熱帯低気圧に変化)"
        return name
    return f"熱帯低気圧{number}"


def format_motion(speed: Dict[str, Any], course: Optional[str]) -> str:
    if speed.get("km/h") is not None:
        return f"を {course}へ 毎時{speed['km/h']}kmの速度で 進んでいます"
    note = (speed.get("note") or {}).get("jp")
    if note is not None:
        if note == "ゆっくり":
            return f"を {course}へ ゆっくり 進んでいます"
        # 停滞 / ほぼ停滞
        return f"で {note} しています"
    return ""


def format_position_line(header: Dict[str, Any], body: Dict[str, Any]) -> str:
    intensity = "" if body.get("intensity", "-") == "-" else f"{body['intensity']} "
    return (
        f"{intensity}{format_cyclone_name(header)}は、"
        f"{format_date(body['validtime']['JST'])}現在 {body['location']}"
        f"{format_motion(body.get('speed', {}), body.get('course'))}。"
    )


def format_strength_line(body: Dict[str, Any]) -> str:
    wind = body.get("maximumWind")
    if wind is None:
        return f"中心気圧は {body['pressure']}hPa です。"
    return (
        f"中心気圧は {body['pressure']}hPa、"
        f"最大風速は 秒速{wind['sustained']['m/s']}m、"
        f"最大瞬間風速は 秒速{wind['gust']['m/s']}m です。"
    )


def format_cyclone(record: CycloneRecord, map_url: Optional[str] = None) -> str:
    """Bulletin block for one cyclone."""
    header, body = record.header, record.current
    lines = [
        format_position_line(header, body),
        format_strength_line(body),
        f"({format_date(record.issue_time)} 発表)",
    ]
    if map_url:
        lines.append(map_url)
    return "\n".join(lines)


def compose_bulletin(blocks: Iterable[str]) -> str:
    return "\n\n".join([*blocks, FOOTER_TEXT])


def compose_no_cyclones() -> str:
    return "\n\n".join([NO_CYCLONES_TEXT, FOOTER_TEXT])
