"""
販売確定 / 辞退のワークフロー。
同じ操作の二重実行は無視（確定と辞退は互いを妨げない）。成功時は確定待ち一覧を丸ごと取り直す。
失敗時はエラー通知のあと例外を呼び出し側へ再送出する。
"""
from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING, Callable, Optional

from rebooked.backend.models import PendingCommit
from rebooked.commit import service
from rebooked.util.errors import error_message
from rebooked.util.log import log_action_summary
from rebooked.workflow.notify import Notifier

if TYPE_CHECKING:
    from rebooked.backend.client import BackendContext

logger = logging.getLogger(__name__)

COMMIT_SUCCESS = "Book sale committed successfully! Delivery process will begin shortly."
DECLINE_SUCCESS = (
    "Sale declined successfully. The book is now available again and the buyer will receive a full refund."
)


class CommitWorkflow:
    def __init__(self, ctx: BackendContext, notifier: Optional[Notifier] = None) -> None:
        self.ctx = ctx
        self.notifier = notifier or Notifier()
        self.pending_commits: list[PendingCommit] = []
        self.is_loading = False
        self._commit_lock = threading.Lock()
        self._decline_lock = threading.Lock()

    @property
    def is_committing(self) -> bool:
        return self._commit_lock.locked()

    @property
    def is_declining(self) -> bool:
        return self._decline_lock.locked()

    def refresh_pending_commits(self) -> list[PendingCommit]:
        """確定待ち一覧を取り直す。例外は出さず、失敗時は空。"""
        self.is_loading = True
        try:
            self.pending_commits = list(service.get_commit_pending_books(self.ctx) or [])
        except Exception as e:
            logger.error("確定待ち一覧の取得に失敗: %s", error_message(e))
            self.pending_commits = []
        finally:
            self.is_loading = False
        return self.pending_commits

    def _run(
        self,
        lock: threading.Lock,
        action: str,
        call: Callable[[], None],
        success_message: str,
        fallback: str,
        target_id: str,
    ) -> bool:
        # 実行中の同じ操作があれば何もしない
        if not lock.acquire(blocking=False):
            logger.info("%s は実行中のため無視 target=%s", action, target_id)
            return False
        try:
            call()
            self.refresh_pending_commits()
            self.notifier.success(success_message)
            log_action_summary(logger, action, True, target_id=target_id)
            return True
        except Exception as e:
            message = error_message(e, fallback)
            logger.error("%s に失敗 target=%s: %s", action, target_id, message)
            self.notifier.error(message)
            log_action_summary(logger, action, False, target_id=target_id, notes=message)
            raise
        finally:
            lock.release()

    def commit_book(self, book_id: str) -> bool:
        """販売確定。実行した場合 True、二重実行で無視した場合 False。"""
        return self._run(
            self._commit_lock,
            "commit_book",
            lambda: service.commit_book_sale(self.ctx, book_id),
            COMMIT_SUCCESS,
            "Failed to commit sale",
            book_id,
        )

    def decline_book(self, book_id: str) -> bool:
        return self._run(
            self._decline_lock,
            "decline_book",
            lambda: service.decline_book_sale(self.ctx, book_id),
            DECLINE_SUCCESS,
            "Failed to decline sale",
            book_id,
        )
