"""Web UI 用の表データ（確定待ち・通報・停止中ユーザー・問い合わせ・書籍・見積もり）。"""
from __future__ import annotations

import pandas as pd

from rebooked.admin.moderation import ModerationData
from rebooked.backend.models import Book, ContactMessage, PendingCommit
from rebooked.courier.models import CourierQuote
from rebooked.payments.split import PaymentSplit


def pending_commits_dataframe(pending: list[PendingCommit]) -> pd.DataFrame:
    if not pending:
        return pd.DataFrame()
    return pd.DataFrame([
        {
            "注文ID": p.id,
            "書籍": p.title,
            "著者": p.author,
            "購入者": p.buyer_name,
            "価格 (R)": p.price,
            "受取額 (R)": p.earnings,
            "手数料 (R)": p.platform_fee,
            "確定期限": p.expires_at or "-",
        }
        for p in pending
    ])


def reports_dataframe(data: ModerationData) -> pd.DataFrame:
    if not data.reports:
        return pd.DataFrame()
    return pd.DataFrame([
        {
            "id": r.id,
            "書籍": r.book_title,
            "出品者": r.seller_name,
            "理由": r.reason,
            "ステータス": r.status,
            "通報者": r.reporter_name or "",
            "通報者メール": r.reporter_email or "",
            "日時": r.created_at or "",
        }
        for r in data.reports
    ])


def suspended_users_dataframe(data: ModerationData) -> pd.DataFrame:
    if not data.suspended_users:
        return pd.DataFrame()
    return pd.DataFrame([
        {
            "id": u.id,
            "名前": u.name,
            "メール": u.email,
            "ステータス": u.status,
            "停止日時": u.suspended_at or "",
            "理由": u.suspension_reason or "",
        }
        for u in data.suspended_users
    ])


def contact_messages_dataframe(messages: list[ContactMessage]) -> pd.DataFrame:
    if not messages:
        return pd.DataFrame()
    return pd.DataFrame([
        {
            "id": m.id,
            "名前": m.name,
            "メール": m.email,
            "件名": m.subject,
            "ステータス": m.status,
            "受信日時": m.created_at or "",
        }
        for m in messages
    ])


def books_dataframe(books: list[Book]) -> pd.DataFrame:
    if not books:
        return pd.DataFrame()
    return pd.DataFrame([
        {
            "id": b.id,
            "タイトル": b.title,
            "著者": b.author,
            "価格 (R)": b.price,
            "状態": b.condition,
            "売約済み": b.sold,
            "出品日時": b.created_at or "",
        }
        for b in books
    ])


def quotes_dataframe(quotes: list[CourierQuote]) -> pd.DataFrame:
    if not quotes:
        return pd.DataFrame()
    return pd.DataFrame([
        {
            "サービス": q.service_name,
            "料金 (R)": q.price,
            "日数": q.estimated_days,
            "説明": q.description,
        }
        for q in quotes
    ])


def split_dataframe(split: PaymentSplit) -> pd.DataFrame:
    """分割結果をランド・セントの2列で。"""
    return pd.DataFrame([
        {"区分": "合計", "ランド": split.total_amount, "セント": split.total_amount_kobo},
        {"区分": "出品者", "ランド": split.seller_amount, "セント": split.seller_amount_kobo},
        {"区分": "プラットフォーム", "ランド": split.platform_amount, "セント": split.platform_amount_kobo},
        {"区分": "配送", "ランド": split.delivery_amount, "セント": split.delivery_amount_kobo},
    ])
