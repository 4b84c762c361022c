"""書籍代金の3分割（出品者 / プラットフォーム / 配送業者）と最小単位換算。"""
from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from rebooked.constants import PLATFORM_COMMISSION_RATE


def round_half_up(value: float) -> int:
    """四捨五入（0.5 は常に切り上げ）。組み込み round の偶数丸めは使わない。"""
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def to_kobo(amount: float) -> int:
    """ランド → セント（×100）。"""
    return round_half_up(amount * 100)


def from_kobo(amount: int) -> int:
    """セント → ランド（÷100 を四捨五入）。"""
    return round_half_up(amount / 100)


@dataclass(frozen=True)
class PaymentSplit:
    total_amount: float
    seller_amount: float
    platform_amount: int
    delivery_amount: float
    total_amount_kobo: int
    seller_amount_kobo: int
    platform_amount_kobo: int
    delivery_amount_kobo: int


def calculate_payment_split(
    book_price: float,
    delivery_fee: float = 0,
    commission_rate: float = PLATFORM_COMMISSION_RATE,
) -> PaymentSplit:
    """
    書籍価格の10%（四捨五入）をプラットフォーム、残りを出品者、配送料は全額配送業者へ。
    seller_amount は引き算で出すため seller + platform は常に book_price と一致する。
    """
    total = book_price + delivery_fee
    platform = round_half_up(book_price * commission_rate)
    seller = book_price - platform
    return PaymentSplit(
        total_amount=total,
        seller_amount=seller,
        platform_amount=platform,
        delivery_amount=delivery_fee,
        total_amount_kobo=to_kobo(total),
        seller_amount_kobo=to_kobo(seller),
        platform_amount_kobo=to_kobo(platform),
        delivery_amount_kobo=to_kobo(delivery_fee),
    )
