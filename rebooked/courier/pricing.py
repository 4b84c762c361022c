"""
Courier Guy の配送料金見積もり。
ネットワーク呼び出しはせず、区間（local / provincial / national）ごとの固定表を返す。
"""
from __future__ import annotations

import logging
from typing import Optional

from rebooked.courier.models import Address, CourierQuote, QuoteRequest

logger = logging.getLogger(__name__)

ZONE_LOCAL = "local"
ZONE_PROVINCIAL = "provincial"
ZONE_NATIONAL = "national"

# 区間 → (サービス名, 料金, 日数, 説明)
_RATE_TABLE: dict[str, list[tuple[str, float, str, str]]] = {
    ZONE_LOCAL: [
        ("Courier Guy - Overnight", 105, "1-2", "Overnight delivery within 1-2 business days"),
        ("Courier Guy - Same Day Economy", 555, "0", "Same day delivery by 17:00 (book before 10:00)"),
    ],
    ZONE_PROVINCIAL: [
        ("Courier Guy - Provincial", 140, "2-3", "Within province delivery, 2-3 business days"),
    ],
    ZONE_NATIONAL: [
        ("Courier Guy - National", 180, "3-5", "Cross-province delivery, 3-5 business days"),
    ],
}


def calculate_zone(origin: Address, destination: Address) -> str:
    """同じ州かつ同じ市 → local、同じ州 → provincial、それ以外 → national。"""
    if origin.province == destination.province and origin.city == destination.city:
        return ZONE_LOCAL
    if origin.province == destination.province:
        return ZONE_PROVINCIAL
    return ZONE_NATIONAL


def get_courier_guy_quotes(request: QuoteRequest) -> list[CourierQuote]:
    """見積もり一覧。想定外の例外は空リスト（呼び出し側は「見積もりなし」を正常系として扱う）。"""
    try:
        zone = calculate_zone(request.origin, request.destination)
        return [
            CourierQuote(service_name=name, price=price, estimated_days=days, description=desc)
            for name, price, days, desc in _RATE_TABLE[zone]
        ]
    except Exception as e:
        logger.error("Courier Guy 見積もりエラー: %s", e, exc_info=True)
        return []


def cheapest_quote(quotes: list[CourierQuote]) -> Optional[CourierQuote]:
    return min(quotes, key=lambda q: q.price) if quotes else None
