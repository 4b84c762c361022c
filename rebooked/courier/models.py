"""配送見積もり用モデル。"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional


@dataclass
class Address:
    city: str
    province: str
    street: str = ""
    postal_code: str = ""
    country: str = "South Africa"

    @classmethod
    def from_api(cls, d: Optional[dict[str, Any]]) -> Optional[Address]:
        if not isinstance(d, dict) or not d:
            return None
        return cls(
            street=d.get("street") or d.get("streetAddress") or d.get("line1") or "",
            city=d.get("city") or d.get("suburb") or "",
            province=d.get("province") or "",
            postal_code=str(d.get("postal_code") or d.get("postalCode") or d.get("zip") or ""),
            country=d.get("country") or "South Africa",
        )

    def is_complete(self) -> bool:
        """集荷先として使える（通り・市・州・郵便番号が揃っている）か。"""
        return bool(self.street and self.city and self.province and self.postal_code)


@dataclass
class Parcel:
    weight: float = 1.0  # kg
    length: float = 30.0  # cm
    width: float = 20.0
    height: float = 5.0
    value: float = 0.0  # 保険用（ランド）


@dataclass
class QuoteRequest:
    origin: Address
    destination: Address
    parcel: Parcel


@dataclass
class CourierQuote:
    service_name: str
    price: float
    estimated_days: str
    description: str
    provider: str = "courier-guy"
