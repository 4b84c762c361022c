"""Supabase のテーブル行・Edge Function 応答用モデル（簡易 dataclass）。"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional


def _float(v: Any, default: float = 0.0) -> float:
    try:
        return float(v)
    except (TypeError, ValueError):
        return default


def _int(v: Any, default: int = 0) -> int:
    try:
        return int(v)
    except (TypeError, ValueError):
        return default


def display_name(
    first_name: Optional[str] = None,
    last_name: Optional[str] = None,
    name: Optional[str] = None,
    email: Optional[str] = None,
    fallback: str = "Anonymous",
) -> str:
    """表示名。姓名 → 旧 name 列 → メールのローカル部 → fallback の順。"""
    full = " ".join(p.strip() for p in (first_name, last_name) if p and p.strip())
    if full:
        return full
    if name and name.strip():
        return name.strip()
    if email and "@" in email:
        local = email.split("@", 1)[0].strip()
        if local:
            return local
    return fallback


@dataclass
class AuthUser:
    id: str
    email: Optional[str] = None

    @classmethod
    def from_api(cls, d: Optional[dict[str, Any]]) -> Optional[AuthUser]:
        if not d or not d.get("id"):
            return None
        return cls(id=str(d["id"]), email=d.get("email"))


@dataclass
class Book:
    id: str
    title: str
    author: str
    price: float
    seller_id: str
    description: str = ""
    category: str = ""
    condition: str = "Good"
    front_cover: Optional[str] = None
    back_cover: Optional[str] = None
    additional_images: list[str] = field(default_factory=list)
    initial_quantity: int = 1
    available_quantity: int = 1
    sold: bool = False
    created_at: Optional[str] = None
    seller_subaccount_code: Optional[str] = None

    @classmethod
    def from_api(cls, d: dict[str, Any]) -> Book:
        return cls(
            id=str(d.get("id", "")),
            title=d.get("title") or "",
            author=d.get("author") or "",
            price=_float(d.get("price")),
            seller_id=str(d.get("seller_id") or ""),
            description=d.get("description") or "",
            category=d.get("category") or "",
            condition=d.get("condition") or "Good",
            front_cover=d.get("front_cover") or d.get("image_url"),
            back_cover=d.get("back_cover"),
            additional_images=list(d.get("additional_images") or []),
            initial_quantity=_int(d.get("initial_quantity"), 1),
            available_quantity=_int(d.get("available_quantity"), 1),
            sold=bool(d.get("sold", False)),
            created_at=d.get("created_at"),
            seller_subaccount_code=d.get("seller_subaccount_code"),
        )


@dataclass
class OrderItem:
    book_id: str
    title: str
    subtotal: float = 0.0
    author: Optional[str] = None

    @classmethod
    def from_api(cls, d: dict[str, Any]) -> OrderItem:
        return cls(
            book_id=str(d.get("book_id") or ""),
            title=d.get("title") or d.get("name") or "",
            subtotal=_float(d.get("subtotal", d.get("price"))),
            author=d.get("author"),
        )


@dataclass
class Order:
    id: str
    seller_id: str
    status: str
    amount: int  # 最小単位（セント）
    items: list[OrderItem]
    buyer_id: Optional[str] = None
    buyer_email: Optional[str] = None
    payment_reference: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @classmethod
    def from_api(cls, d: dict[str, Any]) -> Order:
        raw_items = d.get("items") if isinstance(d.get("items"), list) else []
        return cls(
            id=str(d.get("id", "")),
            seller_id=str(d.get("seller_id") or ""),
            status=d.get("status") or "pending",
            amount=_int(d.get("amount", d.get("total_amount"))),
            items=[OrderItem.from_api(x) for x in raw_items if isinstance(x, dict)],
            buyer_id=d.get("buyer_id"),
            buyer_email=d.get("buyer_email"),
            payment_reference=d.get("paystack_ref") or d.get("payment_reference"),
            created_at=d.get("created_at"),
            updated_at=d.get("updated_at"),
        )

    def first_item(self) -> Optional[OrderItem]:
        return self.items[0] if self.items else None


@dataclass
class PendingCommit:
    """書籍と注文を結合した表示用の投影。取得のたびに作り直す。"""

    id: str
    book_id: str
    title: str
    expires_at: Optional[str]
    buyer_name: str
    price: float
    earnings: float
    platform_fee: float
    buyer_email: Optional[str] = None
    author: str = "Unknown Author"
    image_url: Optional[str] = None
    condition: str = "Good"
    created_at: Optional[str] = None
    status: str = "pending"


@dataclass
class BankingDetails:
    """銀行口座登録フォームの入力。"""

    business_name: str
    email: str
    bank_name: str
    bank_code: str
    account_number: str
    account_holder_name: Optional[str] = None
    phone: Optional[str] = None


@dataclass
class BankingSubaccount:
    user_id: str
    subaccount_code: Optional[str]
    business_name: str = ""
    bank_name: str = ""
    bank_code: str = ""
    account_number: str = ""
    email: str = ""
    status: str = "pending"
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @classmethod
    def from_api(cls, d: Optional[dict[str, Any]]) -> Optional[BankingSubaccount]:
        if not d:
            return None
        code = (
            d.get("subaccount_code")
            or d.get("paystack_subaccount_code")
            or d.get("account_code")
            or d.get("subaccount_id")
        )
        return cls(
            user_id=str(d.get("user_id") or ""),
            subaccount_code=code,
            business_name=d.get("business_name") or "",
            bank_name=d.get("bank_name") or "",
            bank_code=d.get("bank_code") or "",
            account_number=str(d.get("account_number") or ""),
            email=d.get("email") or "",
            status=d.get("status") or "pending",
            created_at=d.get("created_at"),
            updated_at=d.get("updated_at"),
        )

    def masked_account_number(self) -> str:
        return f"****{self.account_number[-4:]}" if self.account_number else "****"


@dataclass
class SellerRequirements:
    """保存しない集計値。取得のたびに再計算。"""

    has_banking_setup: bool = False
    has_pickup_address: bool = False
    has_active_books: bool = False
    can_receive_payments: bool = False
    setup_completion_percentage: int = 0

    @classmethod
    def from_flags(cls, has_banking: bool, has_address: bool, has_books: bool) -> SellerRequirements:
        flags = [has_banking, has_address, has_books]
        completed = sum(1 for f in flags if f)
        return cls(
            has_banking_setup=has_banking,
            has_pickup_address=has_address,
            has_active_books=has_books,
            can_receive_payments=all(flags),
            setup_completion_percentage=round(completed / len(flags) * 100),
        )


@dataclass
class ContactMessage:
    id: str
    name: str
    email: str
    subject: str
    message: str
    status: str = "unread"
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @classmethod
    def from_api(cls, d: dict[str, Any]) -> ContactMessage:
        return cls(
            id=str(d.get("id", "")),
            name=d.get("name") or "",
            email=d.get("email") or "",
            subject=d.get("subject") or "",
            message=d.get("message") or "",
            status=d.get("status") or "unread",
            created_at=d.get("created_at"),
            updated_at=d.get("updated_at"),
        )


@dataclass
class Report:
    id: str
    reason: str
    status: str
    reporter_user_id: Optional[str]
    reported_user_id: Optional[str]
    book_title: str = ""
    seller_name: str = ""
    book_id: Optional[str] = None
    created_at: Optional[str] = None
    reporter_email: Optional[str] = None
    reporter_name: Optional[str] = None

    @classmethod
    def from_api(cls, d: dict[str, Any]) -> Report:
        return cls(
            id=str(d.get("id", "")),
            reason=d.get("reason") or "",
            status=d.get("status") or "pending",
            reporter_user_id=d.get("reporter_user_id"),
            reported_user_id=d.get("reported_user_id"),
            book_title=d.get("book_title") or "",
            seller_name=d.get("seller_name") or "",
            book_id=d.get("book_id"),
            created_at=d.get("created_at"),
        )


@dataclass
class SuspendedUser:
    id: str
    name: str
    email: str
    status: str
    suspended_at: Optional[str] = None
    suspension_reason: Optional[str] = None

    @classmethod
    def from_api(cls, d: dict[str, Any]) -> SuspendedUser:
        return cls(
            id=str(d.get("id", "")),
            name=display_name(d.get("first_name"), d.get("last_name"), d.get("name"), d.get("email")),
            email=d.get("email") or "",
            status=d.get("status") or "suspended",
            suspended_at=d.get("suspended_at"),
            suspension_reason=d.get("suspension_reason"),
        )


@dataclass
class FunctionResponse:
    """Edge Function の共通応答 {success, data?, error?}。"""

    success: bool
    data: Any = None
    error: Optional[str] = None

    @classmethod
    def from_api(cls, d: Any) -> FunctionResponse:
        if not isinstance(d, dict):
            return cls(success=True, data=d)
        if "success" not in d:
            return cls(success=True, data=d)
        data = d.get("data")
        if data is None:
            data = {k: v for k, v in d.items() if k not in ("success", "error")} or None
        error = d.get("error")
        if isinstance(error, dict):
            error = error.get("message") or str(error)
        return cls(success=bool(d.get("success")), data=data, error=error)
