"""
Paystack 関連: 南アフリカの銀行コード表・入力検証・公開キー判定と、
決済系 Edge Function（初期化 / 検証 / 分割 / 送金 / 返金）の呼び出し。
"""
from __future__ import annotations

import logging
import re
import uuid
from typing import TYPE_CHECKING, Any, Optional

from rebooked.constants import (
    CURRENCY,
    FN_INITIALIZE_PAYMENT,
    FN_REFUND_MANAGEMENT,
    FN_SPLIT_MANAGEMENT,
    FN_TRANSFER_MANAGEMENT,
    FN_VERIFY_PAYMENT,
)
from rebooked.payments.split import calculate_payment_split
from rebooked.util.errors import ActionResult, FunctionError, NetworkError

if TYPE_CHECKING:
    from rebooked.backend.client import BackendContext

logger = logging.getLogger(__name__)

PAYSTACK_BANK_CODES: dict[str, str] = {
    "Absa Bank": "632005",
    "African Bank": "430000",
    "Bidvest Bank": "462005",
    "Capitec Bank": "470010",
    "Discovery Bank": "679000",
    "First National Bank (FNB)": "250655",
    "Grindrod Bank": "584000",
    "Investec Bank": "580105",
    "Nedbank": "198765",
    "Standard Bank": "051001",
    "TymeBank": "678910",
    "VBS Mutual Bank": "588000",
}

SA_BANKS = list(PAYSTACK_BANK_CODES.keys())

_PLACEHOLDER_KEYS = ("", "pk_test_default", "pk_test_dummy_key")


def get_bank_code(bank_name: str) -> Optional[str]:
    return PAYSTACK_BANK_CODES.get(bank_name)


def get_bank_name(bank_code: str) -> Optional[str]:
    for name, code in PAYSTACK_BANK_CODES.items():
        if code == bank_code:
            return name
    return None


def is_valid_account_number(account_number: str) -> bool:
    """南アフリカの口座番号は空白を除いて9〜11桁。"""
    cleaned = re.sub(r"\s", "", account_number or "")
    return bool(re.fullmatch(r"\d{9,11}", cleaned))


def is_configured(public_key: Optional[str]) -> bool:
    return bool(public_key) and public_key not in _PLACEHOLDER_KEYS


def is_test_mode(public_key: Optional[str]) -> bool:
    return bool(public_key) and public_key.startswith("pk_test_")


def is_live_mode(public_key: Optional[str]) -> bool:
    return bool(public_key) and public_key.startswith("pk_live_")


def new_reference(prefix: str = "rb") -> str:
    """決済リファレンス。"""
    return f"{prefix}_{uuid.uuid4().hex[:20]}"


def _call(ctx: BackendContext, function_name: str, body: dict[str, Any], **kwargs: Any) -> ActionResult:
    """Edge Function を呼び {success, data, error} に揃える。例外は送出しない。"""
    try:
        resp = ctx.invoke(function_name, body, **kwargs)
    except (FunctionError, NetworkError) as e:
        logger.error("%s 呼び出し失敗: %s", function_name, e.message)
        return ActionResult.fail(e)
    if not resp.success:
        return ActionResult(success=False, error=resp.error or f"{function_name} failed", data=resp.data)
    return ActionResult.ok(resp.data)


def initialize_payment(
    ctx: BackendContext,
    email: str,
    book_price: float,
    delivery_fee: float = 0,
    subaccount_code: Optional[str] = None,
    metadata: Optional[dict[str, Any]] = None,
    reference: Optional[str] = None,
) -> ActionResult:
    """決済を初期化。金額は分割計算の合計（セント）、出品者分はサブアカウントへ。"""
    split = calculate_payment_split(book_price, delivery_fee, commission_rate=ctx.commission_rate)
    body: dict[str, Any] = {
        "email": email,
        "amount": split.total_amount_kobo,
        "currency": CURRENCY,
        "reference": reference or new_reference(),
        "metadata": dict(metadata or {}),
    }
    if subaccount_code:
        body["subaccount"] = subaccount_code
        # 出品者以外の取り分（手数料 + 配送料）をメイン口座側に残す
        body["transaction_charge"] = split.platform_amount_kobo + split.delivery_amount_kobo
        body["bearer"] = "subaccount"
    return _call(ctx, FN_INITIALIZE_PAYMENT, body)


def verify_payment(ctx: BackendContext, reference: str) -> ActionResult:
    return _call(ctx, FN_VERIFY_PAYMENT, {"reference": reference})


def create_split(
    ctx: BackendContext,
    name: str,
    subaccounts: list[dict[str, Any]],
    bearer_type: str = "account",
) -> ActionResult:
    """複数出品者向けの分割設定を作成。"""
    body = {
        "name": name,
        "type": "flat",
        "currency": CURRENCY,
        "subaccounts": subaccounts,
        "bearer_type": bearer_type,
    }
    return _call(ctx, FN_SPLIT_MANAGEMENT, body)


def get_split(ctx: BackendContext, split_code: str) -> ActionResult:
    return _call(ctx, FN_SPLIT_MANAGEMENT, {"action": "fetch", "split_code": split_code})


def initiate_transfer(
    ctx: BackendContext,
    recipient_code: str,
    amount_kobo: int,
    reason: str = "",
    order_id: Optional[str] = None,
) -> ActionResult:
    """出品者への送金（管理者用）。"""
    body = {
        "action": "initiate",
        "recipient": recipient_code,
        "amount": amount_kobo,
        "reason": reason or "ReBooked seller payout",
        "order_id": order_id,
    }
    return _call(ctx, FN_TRANSFER_MANAGEMENT, body)


def request_refund(
    ctx: BackendContext,
    payment_reference: str,
    order_id: Optional[str] = None,
    amount_kobo: Optional[int] = None,
    reason: str = "",
) -> ActionResult:
    """返金要求。amount_kobo を省略すると全額返金。"""
    body: dict[str, Any] = {
        "payment_reference": payment_reference,
        "order_id": order_id,
        "reason": reason,
    }
    if amount_kobo is not None:
        body["amount"] = amount_kobo
    return _call(ctx, FN_REFUND_MANAGEMENT, body)
