"""日時ユーティリティ。"""
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def utc_now_iso() -> str:
    """UTC 現在時刻の ISO 形式文字列。"""
    return utc_now().isoformat().replace("+00:00", "Z")


def parse_iso(value: Optional[str]) -> Optional[datetime]:
    """Supabase の timestamptz 文字列を datetime に。解釈できなければ None。"""
    if not value:
        return None
    text = value.strip().replace("Z", "+00:00")
    try:
        dt = datetime.fromisoformat(text)
    except ValueError:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def add_hours_iso(value: str, hours: int) -> Optional[str]:
    """ISO 文字列に hours 時間を足した ISO 文字列。"""
    dt = parse_iso(value)
    if dt is None:
        return None
    return (dt + timedelta(hours=hours)).astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def hours_since(value: str, now: Optional[datetime] = None) -> Optional[float]:
    dt = parse_iso(value)
    if dt is None:
        return None
    base = now or utc_now()
    return (base - dt).total_seconds() / 3600
