"""
Edge Function 側の共通処理。
{"health": true} 本文または health=true クエリは、本文を読む業務ロジックの前に打ち切って応答する。
"""
from __future__ import annotations

import functools
import json
import logging
from typing import Any, Callable, Optional, Union

from rebooked.constants import FN_PUBLIC_CONFIG
from rebooked.util.datetime_utils import utc_now_iso
from rebooked.util.errors import error_message

logger = logging.getLogger(__name__)

Body = Union[bytes, str, dict, None]
Handler = Callable[[dict[str, Any]], dict[str, Any]]


def is_health_request(query: Optional[dict[str, str]], raw_body: Body) -> bool:
    """ヘルスチェック要求か。クエリを先に見て、本文は必要な場合だけ覗く。"""
    if query and str(query.get("health", "")).lower() == "true":
        return True
    if isinstance(raw_body, dict):
        return raw_body.get("health") is True
    if not raw_body:
        return False
    try:
        parsed = json.loads(raw_body)
    except (TypeError, ValueError):
        return False
    return isinstance(parsed, dict) and parsed.get("health") is True


def health_response(service: str) -> dict[str, Any]:
    return {
        "success": True,
        "service": service,
        "status": "healthy",
        "timestamp": utc_now_iso(),
    }


def error_response(error: Any, details: Any = None) -> dict[str, Any]:
    return {
        "success": False,
        "error": error_message(error, "Internal error"),
        "details": details or {},
        "timestamp": utc_now_iso(),
    }


def _parse_body(raw_body: Body) -> dict[str, Any]:
    if isinstance(raw_body, dict):
        return raw_body
    if not raw_body:
        return {}
    parsed = json.loads(raw_body)
    if not isinstance(parsed, dict):
        raise ValueError("Request body must be a JSON object")
    return parsed


def edge_handler(service: str) -> Callable[[Handler], Callable[..., dict[str, Any]]]:
    """
    ハンドラを包むデコレータ。
    ヘルスチェックを先に処理し、本文は1回だけ解釈して handler(body) に渡す。例外は {success: False} に。
    """

    def decorator(handler: Handler) -> Callable[..., dict[str, Any]]:
        @functools.wraps(handler)
        def wrapper(raw_body: Body = None, query: Optional[dict[str, str]] = None) -> dict[str, Any]:
            if is_health_request(query, raw_body):
                return health_response(service)
            try:
                body = _parse_body(raw_body)
            except ValueError as e:
                return error_response("INVALID_JSON_PAYLOAD", {"message": str(e)})
            try:
                result = handler(body)
            except Exception as e:
                logger.exception("%s handler failed", service)
                return error_response(e)
            result.setdefault("success", True)
            return result

        return wrapper

    return decorator


@edge_handler(FN_PUBLIC_CONFIG)
def public_config(body: dict[str, Any]) -> dict[str, Any]:
    """ブラウザ側が起動時に読む公開設定（URL と anon key のみ）。"""
    from rebooked.config import load_settings

    settings = load_settings()
    return {
        "success": True,
        "data": {
            "supabaseUrl": settings.supabase_url,
            "supabaseAnonKey": settings.supabase_anon_key,
            "paystackPublicKey": settings.paystack_public_key,
            "mapsEnabled": settings.maps_enabled,
        },
    }
