"""
銀行口座登録のワークフロー（画面から呼ぶ層）。
取得した銀行情報を保持し、登録・更新・検証を呼び分ける。
"""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional

from rebooked.backend.models import BankingDetails, BankingSubaccount, SellerRequirements
from rebooked.banking import service
from rebooked.constants import BANKING_ACTIVE
from rebooked.util.errors import ActionResult, RebookedError, ValidationResult, error_message
from rebooked.util.log import log_action_summary

if TYPE_CHECKING:
    from rebooked.backend.client import BackendContext

logger = logging.getLogger(__name__)

NOT_AUTHENTICATED = "User not authenticated"
UNEXPECTED_ERROR = "An unexpected error occurred"

STEP_BANKING = "banking"
STEP_ADDRESS = "address"
STEP_BOOKS = "books"


class BankingWorkflow:
    def __init__(self, ctx: BackendContext) -> None:
        self.ctx = ctx
        self.banking_details: Optional[BankingSubaccount] = None
        self.is_loading = False
        self.error: Optional[str] = None

    def refresh(self) -> Optional[BankingSubaccount]:
        """銀行情報を取り直す。未登録（None）は正常。"""
        user = self.ctx.user
        if user is None:
            self.banking_details = None
            return None
        self.is_loading = True
        self.error = None
        try:
            self.banking_details = service.get_user_banking_details(self.ctx, user.id)
        except RebookedError as e:
            message = error_message(e, "Unknown error occurred")
            logger.error("銀行情報の取得に失敗: %s", message)
            self.error = f"Failed to load banking details: {message}"
        finally:
            self.is_loading = False
        return self.banking_details

    def setup_banking(self, details: BankingDetails) -> ActionResult:
        """登録（既存なら更新）→ 再取得 → 書籍の紐付け。未ログインならリモートを呼ばない。"""
        user = self.ctx.user
        if user is None:
            return ActionResult(success=False, error=NOT_AUTHENTICATED)
        try:
            result = service.create_or_update_subaccount(self.ctx, user.id, details)
            if result.success:
                self.refresh()
                service.link_books_to_subaccount(self.ctx, user.id)
        except Exception as e:
            logger.error("銀行登録に失敗: %s", error_message(e))
            return ActionResult(success=False, error=UNEXPECTED_ERROR)
        log_action_summary(
            logger, "setup_banking", result.success, target_id=user.id,
            notes=result.error or "", subaccount=result.subaccount_code or "(none)",
        )
        return result

    def update_banking(self, details: BankingDetails) -> ActionResult:
        user = self.ctx.user
        if user is None:
            return ActionResult(success=False, error=NOT_AUTHENTICATED)
        try:
            result = service.update_subaccount(self.ctx, user.id, details)
            if result.success:
                self.refresh()
        except Exception as e:
            logger.error("銀行情報の更新に失敗: %s", error_message(e))
            return ActionResult(success=False, error=UNEXPECTED_ERROR)
        log_action_summary(logger, "update_banking", result.success, target_id=user.id, notes=result.error or "")
        return result

    def validate_account_number(self, account_number: str, bank_code: str) -> ValidationResult:
        try:
            return service.validate_account_number(self.ctx, account_number, bank_code)
        except Exception as e:
            logger.error("口座番号の検証に失敗: %s", error_message(e))
            return ValidationResult(valid=False, error="Validation service unavailable")

    @property
    def has_banking_setup(self) -> bool:
        return self.banking_details is not None

    @property
    def is_active(self) -> bool:
        return self.banking_details is not None and self.banking_details.status == BANKING_ACTIVE

    @property
    def subaccount_code(self) -> Optional[str]:
        return self.banking_details.subaccount_code if self.banking_details else None

    @property
    def business_name(self) -> Optional[str]:
        return self.banking_details.business_name if self.banking_details else None

    @property
    def bank_name(self) -> Optional[str]:
        return self.banking_details.bank_name if self.banking_details else None

    @property
    def masked_account_number(self) -> Optional[str]:
        return self.banking_details.masked_account_number() if self.banking_details else None


class SellerRequirementsWorkflow:
    """出品者が支払いを受け取るための3条件の進捗。"""

    def __init__(self, ctx: BackendContext) -> None:
        self.ctx = ctx
        self.requirements = SellerRequirements()

    def refresh(self) -> SellerRequirements:
        user = self.ctx.user
        if user is None:
            self.requirements = SellerRequirements()
        else:
            self.requirements = service.get_seller_requirements(self.ctx, user.id)
        return self.requirements

    @property
    def next_required_step(self) -> Optional[str]:
        """banking → address → books の順で未達の最初の手順。すべて満たせば None。"""
        r = self.requirements
        if not r.has_banking_setup:
            return STEP_BANKING
        if not r.has_pickup_address:
            return STEP_ADDRESS
        if not r.has_active_books:
            return STEP_BOOKS
        return None
