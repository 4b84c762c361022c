"""Supabase Edge Functions（/functions/v1/<name>）の呼び出しとヘルスチェック。"""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Optional

from rebooked.backend.models import FunctionResponse
from rebooked.util.errors import FunctionError, NetworkError, error_message

if TYPE_CHECKING:
    from rebooked.backend.client import BackendContext

logger = logging.getLogger(__name__)

UNAVAILABLE_MESSAGE = "Service temporarily unavailable. Please try again later."
BODY_CONSUMED_MESSAGE = "Request could not be processed (body already consumed). Please try again."

_BODY_CONSUMED_MARKERS = (
    "body already consumed",
    "body stream already read",
    "body has already been consumed",
    "already been read",
)


def is_body_consumed_error(message: str) -> bool:
    """サーバー側でリクエスト本文を二重に読んだときのエラーか。"""
    lowered = (message or "").lower()
    return any(m in lowered for m in _BODY_CONSUMED_MARKERS)


def _payload(r) -> Any:
    if not r.content:
        return {}
    try:
        return r.json()
    except ValueError:
        return {"error": r.text[:500]}


def invoke(
    ctx: BackendContext,
    function_name: str,
    body: Any = None,
    method: str = "POST",
    params: Optional[dict[str, Any]] = None,
) -> FunctionResponse:
    """
    Edge Function を呼び出し FunctionResponse を返す。
    非2xx（404含む）は unavailable=True の FunctionError、本文二重読みは body_consumed=True。
    """
    r = ctx.request(
        method,
        f"functions/v1/{function_name}",
        params=params,
        json_body=body if method != "GET" else None,
    )
    data = _payload(r)
    if r.status_code >= 300:
        detail = error_message(data, f"HTTP {r.status_code}")
        logger.error("Edge Function %s failed: status=%s detail=%s", function_name, r.status_code, detail)
        if is_body_consumed_error(detail):
            raise FunctionError(BODY_CONSUMED_MESSAGE, function_name, r.status_code, body_consumed=True)
        raise FunctionError(UNAVAILABLE_MESSAGE, function_name, r.status_code, unavailable=True)
    resp = FunctionResponse.from_api(data)
    if not resp.success and resp.error and is_body_consumed_error(resp.error):
        raise FunctionError(BODY_CONSUMED_MESSAGE, function_name, r.status_code, body_consumed=True)
    return resp


def health_check(ctx: BackendContext, function_name: str) -> dict[str, Any]:
    """?health=true で疎通確認。本文を送らないので業務ロジックには触れない。"""
    try:
        resp = invoke(ctx, function_name, method="GET", params={"health": "true"})
    except (FunctionError, NetworkError) as e:
        return {"success": False, "service": function_name, "status": "unhealthy", "error": e.message}
    data = resp.data if isinstance(resp.data, dict) else {}
    return {
        "success": resp.success,
        "service": data.get("service", function_name),
        "status": data.get("status", "healthy" if resp.success else "unhealthy"),
        "timestamp": data.get("timestamp"),
    }


def check_all(ctx: BackendContext, function_names: list[str]) -> list[dict[str, Any]]:
    """複数の Edge Function をまとめてヘルスチェック。"""
    return [health_check(ctx, name) for name in function_names]
