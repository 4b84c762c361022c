"""
管理者向けモデレーション：通報一覧と停止中ユーザー。
通報者の名前・メールは埋め込み結合で取得し、リレーションが解決できない環境では手動結合に切り替える。
通報者情報の補完は失敗しても通報一覧そのものは返す。
"""
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Optional

from rebooked.backend.models import Report, SuspendedUser, display_name
from rebooked.constants import (
    PGRST_NO_RELATIONSHIP,
    REPORT_DISMISSED,
    REPORT_RESOLVED,
    TABLE_PROFILES,
    TABLE_REPORTS,
    USER_ACTIVE,
    USER_BANNED,
    USER_SUSPENDED,
)
from rebooked.util.datetime_utils import utc_now_iso
from rebooked.util.errors import BackendError, RebookedError
from rebooked.util.log import log_action_summary

if TYPE_CHECKING:
    from rebooked.backend.client import BackendContext

logger = logging.getLogger(__name__)

REPORT_COLUMNS = (
    "id, book_title, seller_name, reason, status, created_at, "
    "reporter_user_id, reported_user_id, book_id"
)
# profiles に name 列は無い（旧データの name は display_name 側で読むだけ）
REPORTER_COLUMNS = "id, first_name, last_name, email"
REPORTER_EMBED = f"reporter:profiles!reporter_user_id({REPORTER_COLUMNS})"
SUSPENDED_COLUMNS = "id, first_name, last_name, email, status, suspended_at, suspension_reason"


@dataclass
class ModerationData:
    reports: list[Report] = field(default_factory=list)
    suspended_users: list[SuspendedUser] = field(default_factory=list)


def reporter_display_name(profile: Optional[dict[str, Any]]) -> Optional[str]:
    """通報者の表示名。プロフィールが無ければ None（画面側で空欄）。"""
    if not profile:
        return None
    return display_name(
        profile.get("first_name"), profile.get("last_name"), profile.get("name"), profile.get("email"),
    )


def _apply_reporter(report: Report, profile: Optional[dict[str, Any]]) -> Report:
    if profile:
        report.reporter_email = profile.get("email")
        report.reporter_name = reporter_display_name(profile)
    return report


def _fetch_reports_embedded(ctx: BackendContext, limit: int) -> Optional[list[Report]]:
    """
    埋め込み結合で1往復。失敗したら None（手動結合へ）。
    結合部分のエラーと通報本体のエラーは区別できないため、判定は手動結合側に任せる。
    """
    try:
        resp = (
            ctx.table(TABLE_REPORTS)
            .select(f"{REPORT_COLUMNS}, {REPORTER_EMBED}")
            .order("created_at", ascending=False)
            .limit(limit)
            .execute()
        )
    except RebookedError as e:
        logger.warning("埋め込み結合に失敗したため手動結合に切り替えます: %s", e.message)
        return None
    if resp.error is not None:
        if resp.error.code == PGRST_NO_RELATIONSHIP:
            logger.info("reports → profiles のリレーションが無いため手動結合に切り替えます")
        else:
            logger.warning(
                "埋め込み結合に失敗したため手動結合に切り替えます code=%s: %s",
                resp.error.code, resp.error.message,
            )
        return None
    reports = []
    for row in resp.rows():
        reporter = row.get("reporter")
        if isinstance(reporter, list):
            reporter = reporter[0] if reporter else None
        reports.append(_apply_reporter(Report.from_api(row), reporter))
    return reports


def _fetch_reporter_profiles(ctx: BackendContext, reporter_ids: list[str]) -> dict[str, dict[str, Any]]:
    """通報者プロフィールをまとめて取得。失敗はログのみで空。"""
    if not reporter_ids:
        return {}
    try:
        resp = (
            ctx.table(TABLE_PROFILES)
            .select(REPORTER_COLUMNS)
            .in_("id", reporter_ids)
            .execute()
        )
    except RebookedError as e:
        logger.warning("通報者プロフィールの取得に失敗: %s", e.message)
        return {}
    if resp.error is not None:
        logger.warning("通報者プロフィールの取得に失敗: %s", resp.error.message)
        return {}
    return {str(p.get("id")): p for p in resp.rows()}


def _fetch_reports_manual(ctx: BackendContext, limit: int) -> list[Report]:
    resp = (
        ctx.table(TABLE_REPORTS)
        .select(REPORT_COLUMNS)
        .order("created_at", ascending=False)
        .limit(limit)
        .execute()
    )
    if resp.error is not None:
        raise BackendError(f"Failed to load reports: {resp.error.message}")
    reports = [Report.from_api(row) for row in resp.rows()]
    # 実際に登場する通報者だけを問い合わせる
    reporter_ids = sorted({r.reporter_user_id for r in reports if r.reporter_user_id})
    profiles = _fetch_reporter_profiles(ctx, reporter_ids)
    return [_apply_reporter(r, profiles.get(r.reporter_user_id or "")) for r in reports]


def load_reports(ctx: BackendContext, limit: int = 100) -> list[Report]:
    reports = _fetch_reports_embedded(ctx, limit)
    if reports is None:
        reports = _fetch_reports_manual(ctx, limit)
    return reports


def load_suspended_users(ctx: BackendContext) -> list[SuspendedUser]:
    resp = (
        ctx.table(TABLE_PROFILES)
        .select(SUSPENDED_COLUMNS)
        .in_("status", [USER_SUSPENDED, USER_BANNED])
        .order("created_at", ascending=False)
        .execute()
    )
    if resp.error is not None:
        raise BackendError(f"Failed to load suspended users: {resp.error.message}")
    return [SuspendedUser.from_api(row) for row in resp.rows()]


def load_moderation_data(ctx: BackendContext, limit: int = 100) -> ModerationData:
    """通報と停止中ユーザーを並行取得。どちらかの取得失敗は BackendError。"""
    with ThreadPoolExecutor(max_workers=2) as executor:
        reports_future = executor.submit(load_reports, ctx, limit)
        users_future = executor.submit(load_suspended_users, ctx)
        reports = reports_future.result()
        users = users_future.result()
    logger.info("モデレーション: 通報 %d 件 / 停止中ユーザー %d 件", len(reports), len(users))
    return ModerationData(reports=reports, suspended_users=users)


def update_report_status(ctx: BackendContext, report_id: str, status: str) -> None:
    if status not in (REPORT_RESOLVED, REPORT_DISMISSED):
        raise BackendError(f"Invalid report status: {status}")
    resp = (
        ctx.table(TABLE_REPORTS)
        .update({"status": status, "updated_at": utc_now_iso()})
        .eq("id", report_id)
        .execute()
    )
    if resp.error is not None:
        raise BackendError(f"Failed to update report: {resp.error.message}")
    log_action_summary(logger, "update_report_status", True, target_id=report_id, status=status)


def update_user_status(ctx: BackendContext, user_id: str, action: str, reason: str) -> None:
    """action は "ban" または "suspend"。"""
    if action not in ("ban", "suspend"):
        raise BackendError(f"Invalid moderation action: {action}")
    status = USER_BANNED if action == "ban" else USER_SUSPENDED
    resp = (
        ctx.table(TABLE_PROFILES)
        .update({"status": status, "suspension_reason": reason, "suspended_at": utc_now_iso()})
        .eq("id", user_id)
        .execute()
    )
    if resp.error is not None:
        raise BackendError(f"Failed to {action} user: {resp.error.message}")
    log_action_summary(logger, "update_user_status", True, target_id=user_id, status=status)


def unsuspend_user(ctx: BackendContext, user_id: str) -> None:
    resp = (
        ctx.table(TABLE_PROFILES)
        .update({"status": USER_ACTIVE, "suspension_reason": None, "suspended_at": None})
        .eq("id", user_id)
        .execute()
    )
    if resp.error is not None:
        raise BackendError(f"Failed to unsuspend user: {resp.error.message}")
    log_action_summary(logger, "unsuspend_user", True, target_id=user_id)
