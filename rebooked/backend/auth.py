"""Supabase Auth（GoTrue）: パスワードログイン・ユーザー取得・ログアウト。"""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Optional

from rebooked.backend.models import AuthUser
from rebooked.util.errors import AuthRequiredError, error_message

if TYPE_CHECKING:
    from rebooked.backend.client import BackendContext

logger = logging.getLogger(__name__)


def _json(r) -> dict[str, Any]:
    """JSON でない応答（プロキシのエラーページなど）は空扱い。"""
    if not r.content:
        return {}
    try:
        data = r.json()
    except ValueError:
        logger.warning("Auth 応答が JSON ではありません status=%s", r.status_code)
        return {}
    return data if isinstance(data, dict) else {}


def sign_in_with_password(ctx: BackendContext, email: str, password: str) -> AuthUser:
    """メール + パスワードでログインし、ctx にセッションを設定する。"""
    r = ctx.request(
        "POST",
        "auth/v1/token",
        params={"grant_type": "password"},
        json_body={"email": email, "password": password},
    )
    data = _json(r)
    if r.status_code >= 400:
        raise AuthRequiredError(error_message(data, "Invalid login credentials"))
    user = AuthUser.from_api(data.get("user"))
    token = data.get("access_token")
    if not user or not token:
        raise AuthRequiredError("No access_token in response")
    ctx.set_session(user, token)
    logger.info("ログインしました user=%s", user.id)
    return user


def get_user(ctx: BackendContext) -> Optional[AuthUser]:
    """現在のアクセストークンに対応するユーザー。未ログインなら None。"""
    if not ctx.access_token:
        return None
    r = ctx.request("GET", "auth/v1/user")
    if r.status_code >= 400:
        logger.warning("ユーザー取得に失敗: status=%s", r.status_code)
        return None
    user = AuthUser.from_api(_json(r) or None)
    if user:
        ctx.user = user
    return user


def sign_out(ctx: BackendContext) -> None:
    if ctx.access_token:
        ctx.request("POST", "auth/v1/logout")
    ctx.set_session(None, None)
