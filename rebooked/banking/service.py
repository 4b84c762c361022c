"""
出品者の銀行口座（Paystack サブアカウント）まわりのサービス層。
banking_subaccounts / profiles / books テーブルと manage-paystack-subaccount 等の Edge Function を使う。
"""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Optional

from rebooked.backend.models import BankingDetails, BankingSubaccount, SellerRequirements
from rebooked.constants import (
    BANKING_ACTIVE,
    BANKING_PENDING,
    FN_DECRYPT_BANKING_DETAILS,
    FN_MANAGE_SUBACCOUNT,
    FN_VALIDATE_ACCOUNT_NUMBER,
    PG_INSUFFICIENT_PRIVILEGE,
    PG_UNDEFINED_TABLE,
    PG_UNIQUE_VIOLATION,
    TABLE_BANKING_SUBACCOUNTS,
    TABLE_BOOKS,
    TABLE_PROFILES,
)
from rebooked.courier.models import Address
from rebooked.payments import paystack
from rebooked.util.datetime_utils import utc_now_iso
from rebooked.util.errors import (
    ActionResult,
    BackendError,
    FunctionError,
    NetworkError,
    RebookedError,
    StoreError,
    ValidationResult,
    error_info,
)

if TYPE_CHECKING:
    from rebooked.backend.client import BackendContext

logger = logging.getLogger(__name__)

NOT_CONFIGURED_MESSAGE = "Banking system not properly configured. Please contact support."


def _get_profile(ctx: BackendContext, user_id: str) -> Optional[dict[str, Any]]:
    resp = (
        ctx.table(TABLE_PROFILES)
        .select("subaccount_code, preferences, pickup_address")
        .eq("id", user_id)
        .maybe_single()
        .execute()
    )
    if resp.error is not None:
        logger.warning("プロフィール取得に失敗 user=%s: %s", user_id, resp.error.message)
        return None
    return resp.data


def _profile_subaccount(user_id: str, profile: Optional[dict[str, Any]]) -> Optional[BankingSubaccount]:
    """banking_subaccounts が無い環境向け: profiles.subaccount_code から組み立てる。"""
    if not profile or not profile.get("subaccount_code"):
        return None
    prefs = profile.get("preferences") or {}
    bank = prefs.get("bank_details") or {}
    return BankingSubaccount(
        user_id=user_id,
        subaccount_code=profile["subaccount_code"],
        business_name=prefs.get("business_name") or "User Business",
        bank_name=bank.get("bank_name") or "Bank",
        status=BANKING_ACTIVE,
    )


def get_user_banking_details(ctx: BackendContext, user_id: str) -> Optional[BankingSubaccount]:
    """
    最新の active / pending レコードを返す。無ければ任意ステータスの最新、それも無ければ None。
    テーブルが無い環境ではプロフィールのサブアカウントコードで代用。
    """
    if TABLE_BANKING_SUBACCOUNTS in ctx.missing_tables:
        return _profile_subaccount(user_id, _get_profile(ctx, user_id))
    resp = (
        ctx.table(TABLE_BANKING_SUBACCOUNTS)
        .select("*")
        .eq("user_id", user_id)
        .in_("status", [BANKING_ACTIVE, BANKING_PENDING])
        .order("created_at", ascending=False)
        .limit(1)
        .maybe_single()
        .execute()
    )
    if resp.error is not None:
        if resp.error.code == PG_UNDEFINED_TABLE:
            logger.warning("banking_subaccounts テーブルが無いためプロフィールを参照します")
            ctx.missing_tables.add(TABLE_BANKING_SUBACCOUNTS)
            return _profile_subaccount(user_id, _get_profile(ctx, user_id))
        info = error_info(resp.error)
        logger.error("銀行情報の取得に失敗 user=%s code=%s message=%s", user_id, info.code, info.message)
        raise BackendError(f"Database error: {resp.error.message or 'Failed to fetch banking details'}")
    if resp.data:
        return BankingSubaccount.from_api(resp.data)

    any_resp = (
        ctx.table(TABLE_BANKING_SUBACCOUNTS)
        .select("*")
        .eq("user_id", user_id)
        .order("created_at", ascending=False)
        .limit(1)
        .maybe_single()
        .execute()
    )
    if any_resp.error is not None:
        logger.error("銀行情報（全ステータス）の取得に失敗: %s", any_resp.error.message)
        return None
    if not any_resp.data:
        logger.info("銀行情報なし user=%s（新規ユーザーでは正常）", user_id)
        return None
    return BankingSubaccount.from_api(any_resp.data)


def _save_banking_details(
    ctx: BackendContext,
    user_id: str,
    details: BankingDetails,
    subaccount_code: str,
    status: str = BANKING_ACTIVE,
) -> None:
    """サブアカウント作成結果を banking_subaccounts に upsert し、プロフィールにも反映。"""
    now = utc_now_iso()
    record = {
        "user_id": user_id,
        "subaccount_code": subaccount_code,
        "business_name": details.business_name,
        "bank_name": details.bank_name,
        "bank_code": details.bank_code,
        "account_number": details.account_number,
        "email": details.email,
        "status": status,
        "created_at": now,
        "updated_at": now,
    }
    resp = ctx.table(TABLE_BANKING_SUBACCOUNTS).upsert(record, on_conflict="user_id").select().execute()
    if resp.error is not None:
        code = resp.error.code
        if code == PG_UNIQUE_VIOLATION:
            raise BackendError("Banking account already exists for this user")
        if code == PG_UNDEFINED_TABLE:
            raise BackendError("Banking system not properly configured - table missing")
        if code == PG_INSUFFICIENT_PRIVILEGE:
            raise BackendError("Permission denied - unable to save banking details")
        raise BackendError(f"Failed to save banking details to database: {resp.error.message or 'Unknown error'}")

    profile_resp = (
        ctx.table(TABLE_PROFILES)
        .update({
            "subaccount_code": subaccount_code,
            "preferences": {
                "banking_setup_complete": True,
                "business_name": details.business_name,
                "bank_details": {
                    "bank_name": details.bank_name,
                    "account_number_masked": f"****{details.account_number[-4:]}",
                },
            },
        })
        .eq("id", user_id)
        .execute()
    )
    if profile_resp.error is not None:
        logger.warning("プロフィールへの銀行情報反映に失敗: %s", profile_resp.error.message)


def _subaccount_body(user_id: str, details: BankingDetails, is_update: bool) -> dict[str, Any]:
    return {
        "business_name": details.business_name,
        "email": details.email,
        "bank_name": details.bank_name,
        "bank_code": details.bank_code,
        "account_number": details.account_number,
        "primary_contact_email": details.email,
        "primary_contact_name": details.account_holder_name or details.business_name,
        "primary_contact_phone": details.phone,
        "metadata": {"user_id": user_id, "is_update": is_update},
    }


def create_or_update_subaccount(
    ctx: BackendContext, user_id: str, details: BankingDetails
) -> ActionResult:
    """既存レコードがあれば更新、無ければ Paystack サブアカウントを作成して保存。"""
    try:
        existing = get_user_banking_details(ctx, user_id)
        if existing:
            return update_subaccount(ctx, user_id, details, existing=existing)

        if not paystack.is_configured(ctx.settings.paystack_public_key):
            logger.error("Paystack 未設定のため銀行登録は利用できません")
            return ActionResult(success=False, error="Banking service not configured. Please contact support.")

        resp = ctx.invoke(
            FN_MANAGE_SUBACCOUNT,
            _subaccount_body(user_id, details, is_update=False),
            params={"action": "create"},
        )
    except FunctionError as e:
        logger.error("サブアカウント作成に失敗: status=%s message=%s", e.status, e.message)
        if e.status == 404:
            return ActionResult(success=False, error="Banking service unavailable. Please contact support.")
        return ActionResult(success=False, error=f"Failed to create banking account: {e.message}")
    except RebookedError as e:
        logger.error("銀行サービスエラー: %s", e.message)
        return ActionResult.fail(e, "An unexpected error occurred. Please try again.")

    if not resp.success:
        return ActionResult(
            success=False,
            error=f"Failed to create banking account: {resp.error or 'Please try again.'}",
        )
    data = resp.data if isinstance(resp.data, dict) else {}
    subaccount_code = data.get("subaccount_code")
    if not subaccount_code:
        return ActionResult(success=False, error="Failed to create banking account: no subaccount code returned")

    try:
        _save_banking_details(ctx, user_id, details, subaccount_code)
    except (BackendError, NetworkError) as e:
        # Paystack 側は作成済み。ローカル保存の失敗は警告に留める
        logger.warning("サブアカウント %s は作成済みだがローカル保存に失敗: %s", subaccount_code, e.message)
    return ActionResult.ok(subaccount_code=subaccount_code)


def update_subaccount(
    ctx: BackendContext,
    user_id: str,
    details: BankingDetails,
    existing: Optional[BankingSubaccount] = None,
) -> ActionResult:
    """既存サブアカウントの更新（Paystack → banking_subaccounts の順）。"""
    try:
        current = existing or get_user_banking_details(ctx, user_id)
        if not current or not current.subaccount_code:
            return ActionResult(success=False, error="No banking account found. Please set up banking first.")
        resp = ctx.invoke(
            FN_MANAGE_SUBACCOUNT,
            _subaccount_body(user_id, details, is_update=True),
            method="PUT",
            params={"action": "update", "subaccount_id": current.subaccount_code},
        )
        if not resp.success:
            return ActionResult(success=False, error="Failed to update banking details.")
        update_resp = (
            ctx.table(TABLE_BANKING_SUBACCOUNTS)
            .update({
                "business_name": details.business_name,
                "bank_name": details.bank_name,
                "bank_code": details.bank_code,
                "account_number": details.account_number,
                "email": details.email,
                "updated_at": utc_now_iso(),
            })
            .eq("user_id", user_id)
            .execute()
        )
        update_resp.raise_for_error()
    except RebookedError as e:
        logger.error("サブアカウント更新に失敗: %s", e.message)
        return ActionResult(success=False, error="Failed to update banking details.")

    data = resp.data if isinstance(resp.data, dict) else {}
    return ActionResult.ok(subaccount_code=data.get("subaccount_code") or current.subaccount_code)


def link_books_to_subaccount(ctx: BackendContext, user_id: str) -> None:
    """出品者の全書籍に seller_subaccount_code を設定（今後の分割決済の振り分け先）。"""
    try:
        banking = get_user_banking_details(ctx, user_id)
        if not banking or not banking.subaccount_code:
            raise BackendError("No banking account found. Please set up banking first.")
        resp = (
            ctx.table(TABLE_BOOKS)
            .update({"seller_subaccount_code": banking.subaccount_code})
            .eq("seller_id", user_id)
            .execute()
        )
        resp.raise_for_error()
    except RebookedError as e:
        info = error_info(e)
        logger.error("書籍とサブアカウントの紐付けに失敗: message=%s code=%s", info.message, info.code)
        raise BackendError("Failed to link books to payment account") from e
    logger.info("書籍をサブアカウントに紐付けました user=%s subaccount=%s", user_id, banking.subaccount_code)


def validate_account_number(ctx: BackendContext, account_number: str, bank_code: str) -> ValidationResult:
    """口座番号をリモートで検証。形式不正はリモートを呼ばずに invalid。"""
    if not paystack.is_configured(ctx.settings.paystack_public_key):
        return ValidationResult(valid=False, error="Account validation service not available")
    if not paystack.is_valid_account_number(account_number):
        return ValidationResult(valid=False, error="Account number must be 9 to 11 digits")
    try:
        resp = ctx.invoke(
            FN_VALIDATE_ACCOUNT_NUMBER,
            {"accountNumber": account_number.replace(" ", ""), "bankCode": bank_code},
        )
    except FunctionError:
        return ValidationResult(valid=False, error="Could not validate account number")
    data = resp.data if isinstance(resp.data, dict) else {}
    inner = data.get("data") if isinstance(data.get("data"), dict) else data
    return ValidationResult(
        valid=bool(resp.success and data.get("status", True)),
        account_name=inner.get("account_name"),
        error=resp.error,
    )


def decrypt_banking_details(ctx: BackendContext) -> ActionResult:
    """暗号化保存された口座情報を復号して取得（本人のみ）。"""
    ctx.require_user()
    try:
        resp = ctx.invoke(FN_DECRYPT_BANKING_DETAILS, {})
    except (FunctionError, NetworkError) as e:
        return ActionResult.fail(e)
    if not resp.success:
        return ActionResult(success=False, error=resp.error or "Failed to decrypt banking details")
    return ActionResult.ok(resp.data)


def _has_pickup_address(ctx: BackendContext, user_id: str, profile: Optional[dict[str, Any]]) -> bool:
    address = Address.from_api((profile or {}).get("pickup_address"))
    if address and address.is_complete():
        return True
    # 旧データ: 書籍行に集荷先を持っている
    resp = (
        ctx.table(TABLE_BOOKS)
        .select("pickup_address")
        .eq("seller_id", user_id)
        .order("created_at", ascending=False)
        .limit(1)
        .maybe_single()
        .execute()
    )
    if resp.error is not None or not resp.data:
        return False
    book_address = Address.from_api(resp.data.get("pickup_address"))
    return bool(book_address and book_address.is_complete())


def _has_active_books(ctx: BackendContext, user_id: str) -> bool:
    resp = (
        ctx.table(TABLE_BOOKS)
        .select("id")
        .eq("seller_id", user_id)
        .eq("sold", False)
        .limit(1)
        .execute()
    )
    if resp.error is not None:
        logger.warning("出品中の書籍確認に失敗: %s", resp.error.message)
        return False
    return len(resp.rows()) > 0


def get_seller_requirements(ctx: BackendContext, user_id: str) -> SellerRequirements:
    """銀行登録・集荷先住所・出品中書籍の3条件を集計。失敗時はすべて False。"""
    try:
        banking = get_user_banking_details(ctx, user_id)
        profile = _get_profile(ctx, user_id)
        has_banking_from_table = bool(
            banking
            and banking.subaccount_code
            and banking.status in (BANKING_ACTIVE, BANKING_PENDING)
        )
        prefs = (profile or {}).get("preferences") or {}
        has_banking_from_profile = bool(
            prefs.get("banking_setup_complete") and (profile or {}).get("subaccount_code")
        )
        has_banking = has_banking_from_table or has_banking_from_profile
        has_address = _has_pickup_address(ctx, user_id, profile)
        has_books = _has_active_books(ctx, user_id)
    except RebookedError as e:
        logger.error("出品者要件の確認に失敗 user=%s: %s", user_id, e.message)
        return SellerRequirements()
    return SellerRequirements.from_flags(has_banking, has_address, has_books)
