"""
エラー型と例外メッセージの正規化。
どの例外・値からでも "[object Object]" にならない文字列を取り出す。
"""
from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Optional

_BAD_STRINGS = ("", "[object Object]", "undefined", "null", "None", "{}")


class RebookedError(Exception):
    """このパッケージの基底例外。"""

    def __init__(self, message: str = "") -> None:
        super().__init__(message)
        self.message = message


class ConfigError(RebookedError):
    """必須の環境変数が欠けている（起動時の致命的エラー）。"""

    def __init__(self, missing: list[str]) -> None:
        self.missing = list(missing)
        super().__init__("Missing required environment variables: " + ", ".join(self.missing))


class AuthRequiredError(RebookedError):
    """未ログイン。リモート呼び出し前に打ち切る。"""

    def __init__(self, message: str = "User not authenticated") -> None:
        super().__init__(message)


class StoreError(RebookedError):
    """テーブル操作のエラー。PostgREST の code/message/details/hint をほぼそのまま保持。"""

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[str] = None,
        hint: Optional[str] = None,
        status: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.details = details
        self.hint = hint
        self.status = status

    @classmethod
    def from_api(cls, d: Any, status: Optional[int] = None) -> StoreError:
        if not isinstance(d, dict):
            return cls(error_message(d, "Database error"), status=status)
        return cls(
            message=error_message(d, "Database error"),
            code=str(d["code"]) if d.get("code") is not None else None,
            details=d.get("details"),
            hint=d.get("hint"),
            status=status,
        )

    def as_dict(self) -> dict[str, Any]:
        return {"code": self.code, "message": self.message, "details": self.details, "hint": self.hint}


class FunctionError(RebookedError):
    """Edge Function 呼び出しのエラー。"""

    def __init__(
        self,
        message: str,
        function_name: str = "",
        status: Optional[int] = None,
        body_consumed: bool = False,
        unavailable: bool = False,
    ) -> None:
        super().__init__(message)
        self.function_name = function_name
        self.status = status
        self.body_consumed = body_consumed
        self.unavailable = unavailable


class NetworkError(RebookedError):
    """接続不可・タイムアウト。"""


class BackendError(RebookedError):
    """サービス層が利用者向けの文言で包み直したエラー。"""


class ValidationError(RebookedError):
    """入力検証エラー。フィールドごとのメッセージを持つ。"""

    def __init__(self, field_errors: dict[str, str]) -> None:
        self.field_errors = dict(field_errors)
        first = next(iter(self.field_errors.values()), "Invalid input")
        super().__init__(first)


@dataclass
class ActionResult:
    """サービス層の共通戻り値 {success, subaccount_code?, error?}。"""

    success: bool
    subaccount_code: Optional[str] = None
    error: Optional[str] = None
    data: Any = None

    @classmethod
    def ok(cls, data: Any = None, subaccount_code: Optional[str] = None) -> ActionResult:
        return cls(success=True, data=data, subaccount_code=subaccount_code)

    @classmethod
    def fail(cls, error: Any, fallback: str = "An unexpected error occurred") -> ActionResult:
        return cls(success=False, error=error_message(error, fallback))


@dataclass
class ValidationResult:
    """口座番号検証の結果。"""

    valid: bool
    account_name: Optional[str] = None
    error: Optional[str] = None


@dataclass
class ErrorInfo:
    """ログ用の詳細情報。"""

    message: str
    type: str
    code: Optional[str] = None
    details: dict[str, Any] = field(default_factory=dict)


def _usable(value: Any) -> bool:
    return isinstance(value, str) and value.strip() not in _BAD_STRINGS


def error_message(error: Any, fallback: str = "An error occurred") -> str:
    """
    任意の値からエラーメッセージを取り出す。
    優先順: 例外の message → dict の message / error / details / hint → JSON → str()。
    """
    if error is None:
        return fallback
    if isinstance(error, str):
        return error if _usable(error) else fallback
    if isinstance(error, RebookedError) and _usable(error.message):
        return error.message
    if isinstance(error, BaseException):
        text = str(error)
        if _usable(text):
            return text
        return fallback
    if isinstance(error, dict):
        for key in ("message", "error", "details", "hint", "description", "reason"):
            candidate = error.get(key)
            if _usable(candidate):
                return candidate
            if isinstance(candidate, dict):
                nested = error_message(candidate, "")
                if nested:
                    return nested
        if error.get("code") is not None:
            return f"Error code: {error['code']}"
    try:
        text = json.dumps(error, default=str)
        if _usable(text):
            return text if len(text) <= 200 else text[:200] + "..."
    except (TypeError, ValueError):
        pass
    text = str(error)
    return text if _usable(text) else fallback


def error_info(error: Any) -> ErrorInfo:
    """例外をログ出力用に分解。"""
    details: dict[str, Any] = {}
    code = None
    if isinstance(error, StoreError):
        details = error.as_dict()
        code = error.code
    elif isinstance(error, dict):
        details = dict(error)
        code = str(error["code"]) if error.get("code") is not None else None
    return ErrorInfo(
        message=error_message(error),
        type=type(error).__name__,
        code=code,
        details=details,
    )


def toast_error_message(error: Any, prefix: Optional[str] = None) -> str:
    """トースト通知用の文言。"""
    message = error_message(error, "Something went wrong")
    return f"{prefix}: {message}" if prefix else message
