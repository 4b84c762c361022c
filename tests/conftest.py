"""テスト共通: requests.Session 互換の偽セッションと BackendContext。"""
from __future__ import annotations

import json
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

import pytest

from rebooked.backend.client import BackendContext
from rebooked.backend.models import AuthUser
from rebooked.config import Settings


class FakeResponse:
    def __init__(self, status_code: int = 200, payload: Any = None) -> None:
        self.status_code = status_code
        if isinstance(payload, bytes):
            # JSON ではない本文（HTML のエラーページなど）
            self.content = payload
        else:
            self.content = b"" if payload is None else json.dumps(payload).encode("utf-8")
        self.text = self.content.decode("utf-8")

    def json(self) -> Any:
        return json.loads(self.content)


@dataclass
class Call:
    method: str
    path: str
    params: list = field(default_factory=list)
    json: Any = None
    headers: dict = field(default_factory=dict)

    def param(self, name: str) -> Optional[str]:
        for k, v in self.params:
            if k == name:
                return v
        return None

    def has(self, name: str, value: str) -> bool:
        return (name, value) in self.params


@dataclass
class Route:
    method: str
    path: str
    status: int
    payload: Any
    when: Optional[Callable[[Call], bool]] = None
    raises: Optional[BaseException] = None


class FakeSession:
    """登録したルートに最初に一致した応答を返す。一致しなければ AssertionError。"""

    def __init__(self) -> None:
        self.routes: list[Route] = []
        self.calls: list[Call] = []
        self._lock = threading.Lock()

    def add(
        self,
        method: str,
        path: str,
        payload: Any = None,
        status: int = 200,
        when: Optional[Callable[[Call], bool]] = None,
        raises: Optional[BaseException] = None,
    ) -> None:
        self.routes.append(Route(method, path, status, payload, when, raises))

    def request(self, method, url, params=None, json=None, headers=None, timeout=None):
        path = url.split("/", 3)[3]
        if isinstance(params, dict):
            params = list(params.items())
        call = Call(method, path, list(params or []), json, dict(headers or {}))
        with self._lock:
            self.calls.append(call)
        for route in self.routes:
            if route.method == method and route.path == path and (route.when is None or route.when(call)):
                if route.raises is not None:
                    raise route.raises
                return FakeResponse(route.status, route.payload)
        raise AssertionError(f"unexpected request: {method} {path} {call.params}")

    def calls_to(self, method: str, path: str) -> list[Call]:
        return [c for c in self.calls if c.method == method and c.path == path]

    def close(self) -> None:
        pass


@pytest.fixture
def settings() -> Settings:
    return Settings(
        supabase_url="https://test.supabase.co",
        supabase_anon_key="anon-key",
        paystack_public_key="pk_test_abc123",
    )


@pytest.fixture
def session() -> FakeSession:
    return FakeSession()


@pytest.fixture
def ctx(settings, session) -> BackendContext:
    return BackendContext(settings, session=session, timeout_sec=5)


@pytest.fixture
def user_ctx(ctx) -> BackendContext:
    ctx.set_session(AuthUser(id="user-1", email="seller@example.com"), "access-token")
    return ctx
