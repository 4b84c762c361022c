"""
画面の表示済みフラグ類（ポップアップ表示履歴・ようこそ表示・共有リマインダーの非表示）。
値は JSON で local_prefs に保存。読めない値は既定値として扱う。
"""
from __future__ import annotations

import json
import logging
import sqlite3
from dataclasses import asdict, dataclass
from datetime import datetime, timedelta
from typing import Any, Optional

from rebooked.constants import EMAIL_WELCOME_KEY, POPUP_TRACKING_KEY, SHARE_REMINDER_KEY
from rebooked.util.datetime_utils import parse_iso, utc_now, utc_now_iso

logger = logging.getLogger(__name__)

POPUP_COMMIT_REMINDER = "commit_reminder_shown"
POPUP_FIRST_UPLOAD = "first_upload_shown"
POPUP_POST_LISTING = "post_listing_shown"
POPUP_SHARE_PROFILE = "share_profile_shown"

SHARE_REMINDER_SNOOZE = timedelta(hours=24)


@dataclass
class PopupTracking:
    commit_reminder_shown: bool = False
    first_upload_shown: bool = False
    post_listing_shown: bool = False
    share_profile_shown: bool = False
    last_shown: Optional[str] = None

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> PopupTracking:
        return cls(
            commit_reminder_shown=bool(d.get(POPUP_COMMIT_REMINDER, False)),
            first_upload_shown=bool(d.get(POPUP_FIRST_UPLOAD, False)),
            post_listing_shown=bool(d.get(POPUP_POST_LISTING, False)),
            share_profile_shown=bool(d.get(POPUP_SHARE_PROFILE, False)),
            last_shown=d.get("last_shown"),
        )


def user_key(prefix: str, user_id: str) -> str:
    return f"{prefix}_{user_id}"


def get_value(conn: sqlite3.Connection, key: str) -> Any:
    row = conn.execute("SELECT value FROM local_prefs WHERE key = ?", (key,)).fetchone()
    if row is None:
        return None
    try:
        return json.loads(row["value"])
    except ValueError:
        logger.warning("local_prefs の値を読めません key=%s", key)
        return None


def set_value(conn: sqlite3.Connection, key: str, value: Any) -> None:
    conn.execute(
        """
        INSERT INTO local_prefs (key, value, updated_at) VALUES (?, ?, ?)
        ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = excluded.updated_at
        """,
        (key, json.dumps(value), utc_now_iso()),
    )
    conn.commit()


def delete_value(conn: sqlite3.Connection, key: str) -> None:
    conn.execute("DELETE FROM local_prefs WHERE key = ?", (key,))
    conn.commit()


# ---- ポップアップ表示履歴 ----

def get_popup_tracking(conn: sqlite3.Connection, user_id: str) -> PopupTracking:
    stored = get_value(conn, user_key(POPUP_TRACKING_KEY, user_id))
    if isinstance(stored, dict):
        return PopupTracking.from_dict(stored)
    return PopupTracking()


def mark_popup_shown(conn: sqlite3.Connection, user_id: str, popup: str) -> PopupTracking:
    """popup は POPUP_* のいずれか。last_shown は自動で更新。"""
    if popup not in (POPUP_COMMIT_REMINDER, POPUP_FIRST_UPLOAD, POPUP_POST_LISTING, POPUP_SHARE_PROFILE):
        raise ValueError(f"Unknown popup: {popup}")
    data = asdict(get_popup_tracking(conn, user_id))
    data[popup] = True
    data["last_shown"] = utc_now_iso()
    set_value(conn, user_key(POPUP_TRACKING_KEY, user_id), data)
    return PopupTracking.from_dict(data)


def has_popup_been_shown(conn: sqlite3.Connection, user_id: str, popup: str) -> bool:
    return bool(asdict(get_popup_tracking(conn, user_id)).get(popup))


def reset_popup_tracking(conn: sqlite3.Connection, user_id: str) -> None:
    delete_value(conn, user_key(POPUP_TRACKING_KEY, user_id))


def should_show_commit_reminder(conn: sqlite3.Connection, user_id: str) -> bool:
    return not has_popup_been_shown(conn, user_id, POPUP_COMMIT_REMINDER)


# ---- メール確認後のようこそ表示 ----

def has_seen_email_welcome(conn: sqlite3.Connection, user_id: str) -> bool:
    return get_value(conn, user_key(EMAIL_WELCOME_KEY, user_id)) is True


def mark_email_welcome_seen(conn: sqlite3.Connection, user_id: str) -> None:
    set_value(conn, user_key(EMAIL_WELCOME_KEY, user_id), True)


# ---- 共有リマインダー（非表示にしてから24時間は出さない） ----

def dismiss_share_reminder(conn: sqlite3.Connection, user_id: str, now: Optional[datetime] = None) -> None:
    at = (now or utc_now()).isoformat().replace("+00:00", "Z")
    set_value(conn, user_key(SHARE_REMINDER_KEY, user_id), at)


def should_show_share_reminder(conn: sqlite3.Connection, user_id: str, now: Optional[datetime] = None) -> bool:
    stored = get_value(conn, user_key(SHARE_REMINDER_KEY, user_id))
    dismissed_at = parse_iso(stored) if isinstance(stored, str) else None
    if dismissed_at is None:
        return True
    return (now or utc_now()) - dismissed_at >= SHARE_REMINDER_SNOOZE
