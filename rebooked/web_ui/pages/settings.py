"""設定ページ：環境変数 (.env) と設定ファイル (config.yaml)。"""
from __future__ import annotations

import time

import streamlit as st

from rebooked.config import (
    OPTIONAL_ENV,
    REQUIRED_ENV,
    default_config,
    load_config,
    load_env,
    save_config,
    save_env,
)
from rebooked.web_ui.pages.constants import ENV_GUIDE_MARKDOWN


def render_settings() -> None:
    """設定ページを描画。"""
    st.title("⚙️ 設定")
    tab1, tab2 = st.tabs(["環境変数 (.env)", "設定ファイル (config.yaml)"])
    with tab1:
        render_env_tab()
    with tab2:
        render_config_tab()


def render_env_tab() -> None:
    """環境変数タブ。起動に失敗したときの画面からも使う。"""
    st.markdown("### 環境変数設定")
    with st.expander("📖 各項目の取得方法", expanded=False):
        st.markdown(ENV_GUIDE_MARKDOWN)

    env = load_env()
    values: dict[str, str] = {}

    st.markdown("#### 🔴 必須項目")
    for key in REQUIRED_ENV:
        values[key] = st.text_input(
            key,
            value=env.get(key, ""),
            type="password" if key.endswith("_KEY") else "default",
        )
    st.markdown("#### ⚪ オプション項目")
    for key in OPTIONAL_ENV:
        values[key] = st.text_input(key, value=env.get(key, ""))
    values["HTTP_TIMEOUT_SEC"] = str(
        st.number_input(
            "HTTP_TIMEOUT_SEC",
            min_value=5,
            max_value=300,
            value=int(env.get("HTTP_TIMEOUT_SEC", "30")),
            help="HTTP タイムアウト（秒）",
        )
    )

    missing = [k for k in REQUIRED_ENV if not values[k].strip()]
    if missing:
        st.warning(f"⚠️ 以下の必須項目が未入力です: {', '.join(missing)}")

    if st.button("💾 環境変数を保存", type="primary"):
        if missing:
            st.error("必須項目をすべて入力してください。")
        else:
            merged = dict(env)
            merged.update({k: v.strip() for k, v in values.items() if v.strip()})
            save_env(merged)
            st.success("✅ 保存しました！ページをリロードしてください。")
            time.sleep(1)
            st.rerun()


def render_config_tab() -> None:
    st.markdown("### アプリ設定")
    config = load_config()
    defaults = default_config()

    col1, col2 = st.columns(2)
    with col1:
        commission = st.number_input(
            "手数料率",
            min_value=0.0,
            max_value=0.5,
            value=float(config["payments"]["commission_rate"]),
            step=0.01,
            help=f"デフォルト {defaults['payments']['commission_rate']}",
        )
        moderation_limit = st.number_input(
            "通報の表示件数",
            min_value=10,
            max_value=1000,
            value=int(config["admin"]["moderation_limit"]),
        )
    with col2:
        timeout = st.number_input(
            "HTTP タイムアウト（秒）",
            min_value=5,
            max_value=300,
            value=int(config["http"]["timeout_sec"]),
        )
        window_hours = st.number_input(
            "確定期限（時間）",
            min_value=1,
            max_value=240,
            value=int(config["commit"]["window_hours"]),
            help=f"デフォルト {defaults['commit']['window_hours']}",
        )
        st.caption("キャッシュ期間（参考値。有効期限の強制はしません）")
        st.json(config["cache"])

    if st.button("💾 設定を保存", type="primary"):
        config["payments"]["commission_rate"] = commission
        config["admin"]["moderation_limit"] = int(moderation_limit)
        config["http"]["timeout_sec"] = int(timeout)
        config["commit"]["window_hours"] = int(window_hours)
        save_config(config)
        if "ctx" in st.session_state:
            # ログイン状態は保ったまま新しい値を反映
            ctx = st.session_state.ctx
            ctx.commission_rate = float(commission)
            ctx.commit_window_hours = int(window_hours)
            ctx.timeout_sec = int(timeout)
        st.success("✅ 保存しました！")
