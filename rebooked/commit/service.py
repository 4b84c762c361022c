"""
販売確定（コミット）/ 辞退のサービス層。
注文は pending_commit → committed（配送開始）または declined（返金・再出品）。
期限 expires_at は表示用で、ここでは期限切れの状態遷移は行わない。
"""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Optional

from rebooked.backend.models import Book, Order, PendingCommit
from rebooked.constants import (
    COMMIT_WINDOW_HOURS,
    FN_UPDATE_TRACKING_STATUS,
    ORDER_COMMITTED,
    ORDER_DECLINED,
    ORDER_PENDING,
    ORDER_PENDING_COMMIT,
    TABLE_BOOKS,
    TABLE_ORDERS,
)
from rebooked.payments import paystack
from rebooked.payments.split import calculate_payment_split
from rebooked.util.datetime_utils import add_hours_iso, hours_since, utc_now_iso
from rebooked.util.errors import ActionResult, BackendError, RebookedError, error_info
from rebooked.util.log import log_action_summary

if TYPE_CHECKING:
    from rebooked.backend.client import BackendContext

logger = logging.getLogger(__name__)

REFUND_DECLINED = "declined_by_seller"
REFUND_OVERDUE = "overdue_commit"


def _log_error(message: str, error: Any, **context: Any) -> None:
    info = error_info(error)
    logger.error(
        "%s: type=%s message=%s code=%s context=%s",
        message, info.type, info.message, info.code, context,
    )


def _require_id(value: Any, label: str) -> str:
    if not value or not isinstance(value, str):
        raise BackendError(f"Invalid {label} ID provided")
    return value


def _find_seller_order(ctx: BackendContext, order_id: str, seller_id: str) -> Optional[Order]:
    resp = (
        ctx.table(TABLE_ORDERS)
        .select("*")
        .eq("id", order_id)
        .eq("seller_id", seller_id)
        .in_("status", [ORDER_PENDING_COMMIT, ORDER_PENDING])
        .maybe_single()
        .execute()
    )
    if resp.error is not None or not resp.data:
        return None
    return Order.from_api(resp.data)


def _find_seller_book(ctx: BackendContext, book_id: str, seller_id: str) -> Optional[Book]:
    resp = (
        ctx.table(TABLE_BOOKS)
        .select("*")
        .eq("id", book_id)
        .eq("seller_id", seller_id)
        .maybe_single()
        .execute()
    )
    if resp.error is not None:
        _log_error("書籍取得に失敗", resp.error, book_id=book_id)
        return None
    return Book.from_api(resp.data) if resp.data else None


def _set_book_sold(ctx: BackendContext, book_id: str, seller_id: str, sold: bool) -> None:
    resp = (
        ctx.table(TABLE_BOOKS)
        .update({"sold": sold})
        .eq("id", book_id)
        .eq("seller_id", seller_id)
        .execute()
    )
    resp.raise_for_error()


def commit_book_sale(ctx: BackendContext, order_or_book_id: str) -> None:
    """
    販売を確定する。注文IDなら注文を committed にして書籍を売約済みに、書籍IDなら書籍のみ更新。
    失敗時は BackendError を送出（呼び出し側で通知）。
    """
    _require_id(order_or_book_id, "order/book")
    user = ctx.require_user()

    order = _find_seller_order(ctx, order_or_book_id, user.id)
    book_id = order_or_book_id
    if order is not None:
        item = order.first_item()
        book_id = item.book_id if item and item.book_id else ""
        resp = (
            ctx.table(TABLE_ORDERS)
            .update({"status": ORDER_COMMITTED, "committed_at": utc_now_iso(), "updated_at": utc_now_iso()})
            .eq("id", order.id)
            .eq("seller_id", user.id)
            .execute()
        )
        if resp.error is not None:
            _log_error("注文ステータス更新に失敗", resp.error, order_id=order.id)
            raise BackendError(f"Failed to commit sale: {resp.error.message or 'Database update failed'}")
    elif _find_seller_book(ctx, order_or_book_id, user.id) is None:
        raise BackendError("Book not found or you don't have permission to commit this sale")

    if book_id:
        try:
            _set_book_sold(ctx, book_id, user.id, sold=True)
        except RebookedError as e:
            _log_error("書籍ステータス更新に失敗", e, book_id=book_id)
            raise BackendError(f"Failed to commit sale: {e.message or 'Database update failed'}") from e

    log_action_summary(
        logger, "commit_sale", True, target_id=order.id if order else book_id,
        user_id=user.id, book_id=book_id or "(none)",
    )


def decline_book_sale(ctx: BackendContext, order_or_book_id: str) -> None:
    """
    販売を辞退する。注文を declined に、書籍を再出品（sold=False）にし、決済済みなら全額返金を要求。
    書籍の再出品・返金の失敗は警告のみ（注文の辞退を優先）。
    """
    _require_id(order_or_book_id, "order/book")
    user = ctx.require_user()

    order = _find_seller_order(ctx, order_or_book_id, user.id)
    book: Optional[Book] = None
    if order is not None:
        item = order.first_item()
        if item and item.book_id:
            book = _find_seller_book(ctx, item.book_id, user.id)
    else:
        book = _find_seller_book(ctx, order_or_book_id, user.id)
        if book is None:
            raise BackendError("Order or book not found, or you don't have permission to decline this sale")

    if order is not None:
        now = utc_now_iso()
        resp = (
            ctx.table(TABLE_ORDERS)
            .update({
                "status": ORDER_DECLINED,
                "declined_at": now,
                "decline_reason": "Declined by seller",
                "updated_at": now,
            })
            .eq("id", order.id)
            .eq("seller_id", user.id)
            .execute()
        )
        if resp.error is not None:
            _log_error("注文の辞退に失敗", resp.error, order_id=order.id)
            raise BackendError(f"Failed to decline order: {resp.error.message or 'Database update failed'}")

    if book is not None:
        try:
            _set_book_sold(ctx, book.id, user.id, sold=False)
        except RebookedError as e:
            logger.warning("書籍の再出品に失敗（注文は辞退済み）book=%s: %s", book.id, e.message)

    if order is not None:
        refund = process_refund(ctx, order, REFUND_DECLINED)
        if not refund.success:
            logger.warning("返金要求に失敗 order=%s: %s", order.id, refund.error)

    log_action_summary(
        logger, "decline_sale", True,
        target_id=order.id if order else (book.id if book else order_or_book_id),
        user_id=user.id, book_id=book.id if book else "(none)",
    )


def process_refund(ctx: BackendContext, order: Order, reason: str) -> ActionResult:
    """辞退・期限超過の注文を全額返金。決済リファレンスが無ければ返金対象なし。"""
    if not order.payment_reference:
        logger.info("決済リファレンスなしのため返金をスキップ order=%s reason=%s", order.id, reason)
        return ActionResult.ok({"refunded": False})
    result = paystack.request_refund(
        ctx,
        order.payment_reference,
        order_id=order.id,
        amount_kobo=order.amount or None,
        reason=reason,
    )
    log_action_summary(
        logger, "process_refund", result.success, target_id=order.id,
        notes=result.error or "", reason=reason,
    )
    return result


def check_commit_deadline(order_created_at: str, now=None, window_hours: int = COMMIT_WINDOW_HOURS) -> bool:
    """注文から window_hours（既定48時間）を過ぎているか。日時が解釈できなければ False。"""
    elapsed = hours_since(order_created_at, now)
    return elapsed is not None and elapsed > window_hours


def _to_pending_commit(ctx: BackendContext, order: Order) -> PendingCommit:
    item = order.first_item()
    book: Optional[dict[str, Any]] = None
    if item and item.book_id:
        resp = (
            ctx.table(TABLE_BOOKS)
            .select("id, title, author, price, image_url, front_cover, condition")
            .eq("id", item.book_id)
            .maybe_single()
            .execute()
        )
        if resp.error is not None:
            logger.warning("書籍詳細を取得できません book=%s", item.book_id)
        else:
            book = resp.data
    book = book or {}

    price = order.amount / 100
    split = calculate_payment_split(price, commission_rate=ctx.commission_rate)
    title = book.get("title") or (item.title if item else "") or "Order Item"
    buyer_name = "Unknown Buyer"
    if order.buyer_email and "@" in order.buyer_email:
        buyer_name = order.buyer_email.split("@", 1)[0] or buyer_name
    return PendingCommit(
        id=order.id,
        book_id=(item.book_id if item and item.book_id else None) or book.get("id") or "unknown",
        title=title,
        expires_at=add_hours_iso(order.created_at, ctx.commit_window_hours) if order.created_at else None,
        buyer_name=buyer_name,
        buyer_email=order.buyer_email,
        price=price,
        earnings=split.seller_amount,
        platform_fee=split.platform_amount,
        author=book.get("author") or (item.author if item else None) or "Unknown Author",
        image_url=book.get("image_url") or book.get("front_cover"),
        condition=book.get("condition") or "Good",
        created_at=order.created_at,
    )


def get_commit_pending_books(ctx: BackendContext) -> list[PendingCommit]:
    """
    出品者の確定待ち注文（pending_commit / pending）を古い順に。
    未ログイン・取得失敗は空リスト（画面を壊さない）。
    """
    if ctx.user is None:
        logger.info("未ログインのため確定待ちなし")
        return []
    try:
        resp = (
            ctx.table(TABLE_ORDERS)
            .select("id, amount, created_at, status, payment_status, buyer_email, items")
            .eq("seller_id", ctx.user.id)
            .in_("status", [ORDER_PENDING_COMMIT, ORDER_PENDING])
            .order("created_at", ascending=True)
            .execute()
        )
        if resp.error is not None:
            _log_error("確定待ち注文の取得に失敗", resp.error, user_id=ctx.user.id)
            return []
        orders = [Order.from_api(row) for row in resp.rows()]
        pending = [_to_pending_commit(ctx, o) for o in orders]
    except RebookedError as e:
        _log_error("確定待ち注文の取得で例外", e)
        return []
    logger.info("確定待ち %d 件 user=%s", len(pending), ctx.user.id)
    return pending


def update_tracking_status(
    ctx: BackendContext,
    order_id: str,
    tracking_number: str,
    status: Optional[str] = None,
) -> ActionResult:
    """確定後の配送追跡情報を update-tracking-status に送る。"""
    body: dict[str, Any] = {"order_id": order_id, "tracking_number": tracking_number}
    if status:
        body["status"] = status
    try:
        resp = ctx.invoke(FN_UPDATE_TRACKING_STATUS, body)
    except RebookedError as e:
        _log_error("追跡情報の更新に失敗", e, order_id=order_id)
        return ActionResult.fail(e, "Failed to update tracking status")
    if not resp.success:
        return ActionResult(success=False, error=resp.error or "Failed to update tracking status")
    return ActionResult.ok(resp.data)
