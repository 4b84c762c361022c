"""
PostgREST（/rest/v1）へのフルエント問い合わせ。
ctx.table("books").select("id, title").eq("seller_id", uid).order("created_at").limit(10).execute()
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Iterable, Optional

from rebooked.constants import PGRST_NO_ROWS
from rebooked.util.errors import StoreError

if TYPE_CHECKING:
    from rebooked.backend.client import BackendContext

logger = logging.getLogger(__name__)

_OBJECT_ACCEPT = "application/vnd.pgrst.object+json"


@dataclass
class StoreResponse:
    """{data, error} 形式の結果。error があれば data は None。"""

    data: Any
    error: Optional[StoreError] = None
    status: int = 200

    def raise_for_error(self) -> Any:
        if self.error is not None:
            raise self.error
        return self.data

    def rows(self) -> list[dict[str, Any]]:
        if self.data is None:
            return []
        if isinstance(self.data, list):
            return self.data
        return [self.data]


def _format_value(v: Any) -> str:
    if v is None:
        return "null"
    if isinstance(v, bool):
        return "true" if v else "false"
    return str(v)


def _quote_list_item(v: Any) -> str:
    text = _format_value(v)
    if any(c in text for c in ",()\" "):
        return '"' + text.replace('"', '\\"') + '"'
    return text


class Query:
    """1テーブルに対する1回分の問い合わせ。"""

    def __init__(self, ctx: BackendContext, table: str) -> None:
        self.ctx = ctx
        self.table_name = table
        self._method = "GET"
        self._select: Optional[str] = None
        self._filters: list[tuple[str, str]] = []
        self._order: list[str] = []
        self._limit: Optional[int] = None
        self._body: Any = None
        self._single = False
        self._maybe_single = False
        self._on_conflict: Optional[str] = None
        self._returning = False

    # ---- 操作 ----

    def select(self, columns: str = "*") -> Query:
        self._select = " ".join(columns.split())
        if self._method != "GET":
            self._returning = True
        return self

    def insert(self, rows: Any) -> Query:
        self._method = "POST"
        self._body = rows
        return self

    def upsert(self, rows: Any, on_conflict: Optional[str] = None) -> Query:
        self._method = "POST"
        self._body = rows
        self._on_conflict = on_conflict or ""
        return self

    def update(self, values: dict[str, Any]) -> Query:
        self._method = "PATCH"
        self._body = values
        return self

    def delete(self) -> Query:
        self._method = "DELETE"
        return self

    # ---- フィルタ ----

    def _add(self, column: str, op: str, value: str) -> Query:
        self._filters.append((column, f"{op}.{value}"))
        return self

    def eq(self, column: str, value: Any) -> Query:
        return self._add(column, "eq", _format_value(value))

    def neq(self, column: str, value: Any) -> Query:
        return self._add(column, "neq", _format_value(value))

    def gt(self, column: str, value: Any) -> Query:
        return self._add(column, "gt", _format_value(value))

    def gte(self, column: str, value: Any) -> Query:
        return self._add(column, "gte", _format_value(value))

    def lt(self, column: str, value: Any) -> Query:
        return self._add(column, "lt", _format_value(value))

    def in_(self, column: str, values: Iterable[Any]) -> Query:
        joined = ",".join(_quote_list_item(v) for v in values)
        return self._add(column, "in", f"({joined})")

    def is_(self, column: str, value: Any) -> Query:
        return self._add(column, "is", _format_value(value))

    def order(self, column: str, ascending: bool = True) -> Query:
        self._order.append(f"{column}.{'asc' if ascending else 'desc'}")
        return self

    def limit(self, n: int) -> Query:
        self._limit = int(n)
        return self

    def single(self) -> Query:
        """ちょうど1行を要求。0行なら PGRST116。"""
        self._single = True
        return self

    def maybe_single(self) -> Query:
        """0行なら data=None（エラーにしない）。"""
        self._maybe_single = True
        return self

    # ---- 実行 ----

    def build_params(self) -> list[tuple[str, str]]:
        params: list[tuple[str, str]] = []
        if self._select is not None and (self._method == "GET" or self._returning):
            params.append(("select", self._select))
        params.extend(self._filters)
        if self._order:
            params.append(("order", ",".join(self._order)))
        if self._limit is not None:
            params.append(("limit", str(self._limit)))
        if self._on_conflict:
            params.append(("on_conflict", self._on_conflict))
        return params

    def build_headers(self) -> dict[str, str]:
        h: dict[str, str] = {}
        prefer: list[str] = []
        if self._method != "GET":
            prefer.append("return=representation" if self._returning else "return=minimal")
        if self._on_conflict is not None:
            prefer.append("resolution=merge-duplicates")
        if prefer:
            h["Prefer"] = ",".join(prefer)
        if self._single:
            h["Accept"] = _OBJECT_ACCEPT
        return h

    def execute(self) -> StoreResponse:
        """問い合わせを送り StoreResponse を返す。接続エラーは NetworkError として送出。"""
        r = self.ctx.request(
            self._method,
            f"rest/v1/{self.table_name}",
            params=self.build_params(),
            json_body=self._body,
            headers=self.build_headers(),
        )
        payload: Any = None
        if r.content:
            try:
                payload = r.json()
            except ValueError:
                payload = {"message": r.text[:500]}
        if r.status_code >= 400:
            error = StoreError.from_api(payload, status=r.status_code)
            logger.debug(
                "store error table=%s code=%s message=%s details=%s hint=%s",
                self.table_name, error.code, error.message, error.details, error.hint,
            )
            return StoreResponse(data=None, error=error, status=r.status_code)
        if self._maybe_single:
            rows = payload if isinstance(payload, list) else ([payload] if payload else [])
            return StoreResponse(data=rows[0] if rows else None, status=r.status_code)
        if self._single and isinstance(payload, list):
            if len(payload) != 1:
                return StoreResponse(
                    data=None,
                    error=StoreError(
                        "JSON object requested, multiple (or no) rows returned",
                        code=PGRST_NO_ROWS,
                        status=406,
                    ),
                    status=406,
                )
            payload = payload[0]
        return StoreResponse(data=payload, status=r.status_code)
