"""
Supabase への接続コンテキスト。
セッション・ログインユーザー・接続状態・未作成テーブルのキャッシュを1つのオブジェクトにまとめ、
モジュール変数を持たない。init / reset で明示的にライフサイクルを管理する。
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Any, Optional

import requests

from rebooked.backend.models import AuthUser
from rebooked.config import Settings
from rebooked.constants import COMMIT_WINDOW_HOURS, PLATFORM_COMMISSION_RATE
from rebooked.util import http
from rebooked.util.datetime_utils import utc_now
from rebooked.util.errors import AuthRequiredError, NetworkError

if TYPE_CHECKING:
    from rebooked.backend.query import Query

logger = logging.getLogger(__name__)


@dataclass
class ConnectionStatus:
    is_online: bool
    backend_connected: bool
    last_checked: datetime


class ConnectionMonitor:
    """ブラウザの online/offline 相当と、定期疎通確認の結果を保持する。"""

    def __init__(self) -> None:
        self.reset()

    def reset(self) -> None:
        self.is_online = True
        self.backend_connected = True
        self.last_checked = utc_now()

    def mark_online(self) -> None:
        if not self.is_online:
            logger.info("接続が回復しました")
        self.is_online = True

    def mark_offline(self) -> None:
        if self.is_online:
            logger.warning("接続が失われました。一部機能は利用できません")
        self.is_online = False

    def record_check(self, ok: bool) -> None:
        self.backend_connected = ok
        self.last_checked = utc_now()

    def snapshot(self) -> ConnectionStatus:
        return ConnectionStatus(
            is_online=self.is_online,
            backend_connected=self.backend_connected,
            last_checked=self.last_checked,
        )


class BackendContext:
    """REST / Auth / Functions 呼び出しの共通入口。"""

    def __init__(
        self,
        settings: Settings,
        session: Optional[requests.Session] = None,
        timeout_sec: Optional[int] = None,
        commission_rate: Optional[float] = None,
        commit_window_hours: Optional[int] = None,
    ) -> None:
        self.settings = settings
        self.session = session
        self.timeout_sec = timeout_sec or http.get_timeout_sec()
        # config.yaml の payments.commission_rate / commit.window_hours
        self.commission_rate = PLATFORM_COMMISSION_RATE if commission_rate is None else commission_rate
        self.commit_window_hours = commit_window_hours or COMMIT_WINDOW_HOURS
        self.user: Optional[AuthUser] = None
        self.access_token: Optional[str] = None
        self.connection = ConnectionMonitor()
        self.missing_tables: set[str] = set()
        self.init()

    def init(self) -> None:
        if self.session is None:
            self.session = requests.Session()

    def reset(self) -> None:
        """ログイン状態・接続状態・テーブルキャッシュを初期化。"""
        self.user = None
        self.access_token = None
        self.connection.reset()
        self.missing_tables.clear()

    def close(self) -> None:
        self.reset()
        if self.session is not None and hasattr(self.session, "close"):
            self.session.close()

    # ---- 認証 ----

    def set_session(self, user: Optional[AuthUser], access_token: Optional[str]) -> None:
        self.user = user
        self.access_token = access_token

    def require_user(self) -> AuthUser:
        """ログイン済みユーザーを返す。未ログインなら AuthRequiredError。"""
        if self.user is None:
            raise AuthRequiredError()
        return self.user

    # ---- HTTP ----

    def headers(self, extra: Optional[dict[str, str]] = None) -> dict[str, str]:
        token = self.access_token or self.settings.supabase_anon_key
        h = {
            "apikey": self.settings.supabase_anon_key,
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json",
        }
        if extra:
            h.update(extra)
        return h

    def url(self, path: str) -> str:
        return f"{self.settings.supabase_url}/{path.lstrip('/')}"

    def request(
        self,
        method: str,
        path: str,
        params: Any = None,
        json_body: Any = None,
        headers: Optional[dict[str, str]] = None,
    ) -> requests.Response:
        """1回の HTTP 呼び出し。requests の例外はすべて NetworkError に変換。"""
        try:
            r = self.session.request(
                method,
                self.url(path),
                params=params,
                json=json_body,
                headers=self.headers(headers),
                timeout=self.timeout_sec,
            )
        except requests.Timeout as e:
            raise NetworkError(f"Request timeout: {path}") from e
        except requests.ConnectionError as e:
            self.connection.mark_offline()
            raise NetworkError("Connection error - please check your internet and try again") from e
        except requests.RequestException as e:
            # 途中切断・リダイレクト過多・不正URLなど
            raise NetworkError(f"Request failed: {path}: {e}") from e
        self.connection.mark_online()
        return r

    # ---- 入口 ----

    def table(self, name: str) -> Query:
        from rebooked.backend.query import Query

        return Query(self, name)

    def invoke(self, function_name: str, body: Any = None, **kwargs: Any):
        from rebooked.backend import functions

        return functions.invoke(self, function_name, body, **kwargs)

    def test_connection(self) -> bool:
        """books を1件読むだけの疎通確認。結果は connection に記録。"""
        try:
            resp = http.fetch_with_timeout(
                lambda: self.table("books").select("id").limit(1).execute(),
                self.timeout_sec,
                "connection check",
            )
            ok = resp.error is None
        except NetworkError as e:
            logger.warning("疎通確認に失敗: %s", e)
            ok = False
        self.connection.record_check(ok)
        return ok
