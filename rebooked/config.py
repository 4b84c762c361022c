"""設定の読み込み・保存。環境変数（必須/任意）と config.yaml を扱う。"""
from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

import yaml
from dotenv import load_dotenv

from rebooked.constants import (
    CACHE_DURATIONS_SEC,
    COMMIT_WINDOW_HOURS,
    DEFAULT_APP_URL,
    PLATFORM_COMMISSION_RATE,
)
from rebooked.util.errors import ConfigError

load_dotenv()

ROOT = Path(__file__).resolve().parent.parent

REQUIRED_ENV = ["SUPABASE_URL", "SUPABASE_ANON_KEY", "PAYSTACK_PUBLIC_KEY"]
OPTIONAL_ENV = ["GOOGLE_MAPS_API_KEY", "APP_URL"]


@dataclass(frozen=True)
class Settings:
    """起動時に確定する接続設定。"""

    supabase_url: str
    supabase_anon_key: str
    paystack_public_key: str
    google_maps_api_key: Optional[str] = None
    app_url: str = DEFAULT_APP_URL

    @property
    def maps_enabled(self) -> bool:
        """Google Maps キーが無ければ住所は手入力にフォールバックする。"""
        return bool(self.google_maps_api_key)


def _get_env(key: str, env: Optional[dict[str, str]] = None) -> str:
    source = env if env is not None else os.environ
    value = (source.get(key) or "").strip()
    if value in ("undefined", "null"):
        return ""
    return value


def missing_required_env(env: Optional[dict[str, str]] = None) -> list[str]:
    """未設定の必須環境変数名を返す。"""
    return [k for k in REQUIRED_ENV if not _get_env(k, env)]


def validate_environment(env: Optional[dict[str, str]] = None) -> None:
    """必須環境変数が揃っているか検証。欠けていれば ConfigError。"""
    missing = missing_required_env(env)
    if missing:
        raise ConfigError(missing)


def load_settings(env: Optional[dict[str, str]] = None) -> Settings:
    """環境変数から Settings を構築。必須項目が無ければ ConfigError。"""
    validate_environment(env)
    return Settings(
        supabase_url=_get_env("SUPABASE_URL", env).rstrip("/"),
        supabase_anon_key=_get_env("SUPABASE_ANON_KEY", env),
        paystack_public_key=_get_env("PAYSTACK_PUBLIC_KEY", env),
        google_maps_api_key=_get_env("GOOGLE_MAPS_API_KEY", env) or None,
        app_url=_get_env("APP_URL", env) or DEFAULT_APP_URL,
    )


def default_config() -> dict[str, Any]:
    """デフォルト設定を返す。"""
    return {
        "payments": {
            "commission_rate": PLATFORM_COMMISSION_RATE,
            "currency": "ZAR",
        },
        "commit": {
            "window_hours": COMMIT_WINDOW_HOURS,
        },
        "http": {
            "timeout_sec": 30,
        },
        "admin": {
            "moderation_limit": 100,
        },
        # 宣言のみ（有効期限の強制はしない）
        "cache": dict(CACHE_DURATIONS_SEC),
    }


def load_config(config_path: Optional[str] = None) -> dict[str, Any]:
    """config.yaml を読み込む。存在しなければデフォルトを返す。読み込みエラー時もデフォルトを返す。"""
    path = config_path or os.getenv("CONFIG_PATH") or str(ROOT / "config.yaml")
    if not os.path.isfile(path):
        return default_config()
    try:
        with open(path, "r", encoding="utf-8") as f:
            loaded = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError):
        return default_config()
    if not isinstance(loaded, dict):
        return default_config()
    config = default_config()
    for section, values in loaded.items():
        if isinstance(values, dict) and isinstance(config.get(section), dict):
            config[section].update(values)
        else:
            config[section] = values
    return config


def save_config(config: dict[str, Any], config_path: Optional[str] = None) -> None:
    """config.yaml に保存する。"""
    path = config_path or str(ROOT / "config.yaml")
    with open(path, "w", encoding="utf-8") as f:
        yaml.dump(config, f, allow_unicode=True, default_flow_style=False)


def load_env(env_path: Optional[str] = None) -> dict[str, str]:
    """.env ファイルを読み込む。"""
    path = env_path or str(ROOT / ".env")
    env: dict[str, str] = {}
    if os.path.isfile(path):
        with open(path, "r", encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                if line and not line.startswith("#") and "=" in line:
                    key, value = line.split("=", 1)
                    env[key.strip()] = value.strip()
    return env


def save_env(env: dict[str, str], env_path: Optional[str] = None) -> None:
    """.env ファイルに保存する。"""
    path = env_path or str(ROOT / ".env")
    with open(path, "w", encoding="utf-8") as f:
        for key, value in env.items():
            f.write(f"{key}={value}\n")
