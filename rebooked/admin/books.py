"""管理者向けの書籍一覧と一括削除。物理削除はここからのみ行う。"""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional

from rebooked.backend.models import Book
from rebooked.constants import TABLE_BOOKS
from rebooked.util.errors import ActionResult, BackendError
from rebooked.util.log import log_action_summary

if TYPE_CHECKING:
    from rebooked.backend.client import BackendContext

logger = logging.getLogger(__name__)

BOOK_COLUMNS = "id, title, author, price, seller_id, category, condition, sold, created_at, seller_subaccount_code"


def list_books(
    ctx: BackendContext,
    seller_id: Optional[str] = None,
    include_sold: bool = True,
    limit: int = 100,
) -> list[Book]:
    q = ctx.table(TABLE_BOOKS).select(BOOK_COLUMNS)
    if seller_id:
        q = q.eq("seller_id", seller_id)
    if not include_sold:
        q = q.eq("sold", False)
    resp = q.order("created_at", ascending=False).limit(limit).execute()
    if resp.error is not None:
        raise BackendError(f"Failed to load books: {resp.error.message}")
    return [Book.from_api(row) for row in resp.rows()]


def delete_books_bulk(ctx: BackendContext, book_ids: list[str]) -> ActionResult:
    """指定した書籍をまとめて削除。削除件数を data["deleted"] に。"""
    ids = sorted({b for b in book_ids if b})
    if not ids:
        return ActionResult(success=False, error="No books selected")
    resp = ctx.table(TABLE_BOOKS).delete().in_("id", ids).select("id").execute()
    if resp.error is not None:
        logger.error("書籍の一括削除に失敗: code=%s message=%s", resp.error.code, resp.error.message)
        return ActionResult.fail(resp.error, "Failed to delete books")
    deleted = len(resp.rows())
    log_action_summary(logger, "delete_books_bulk", True, notes=f"{deleted}/{len(ids)} deleted")
    return ActionResult.ok({"deleted": deleted, "requested": len(ids)})
