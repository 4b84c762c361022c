"""
Streamlit Web UI エントリーポイント。
出品者の確定待ち・銀行口座、管理者のモデレーション、計算ツール、設定を扱う。
"""
from __future__ import annotations

import sys
from pathlib import Path

import streamlit as st
from dotenv import load_dotenv

# プロジェクトルートをパスに追加
ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

load_dotenv()

from rebooked.config import missing_required_env
from rebooked.util.log import setup_logging
from rebooked.web_ui.pages import (
    render_admin,
    render_banking,
    render_commits,
    render_dashboard,
    render_env_tab,
    render_settings,
    render_tools,
)
from rebooked.web_ui.services import get_context, login, logout

PAGES = {
    "🏠 ダッシュボード": render_dashboard,
    "📦 確定待ち": render_commits,
    "🏦 銀行口座": render_banking,
    "🛡️ 管理": render_admin,
    "🧮 計算ツール": render_tools,
    "⚙️ 設定": render_settings,
}


def render_env_fallback(missing: list[str]) -> None:
    """必須の環境変数が無いときの画面。ここで .env を保存できる。"""
    st.title("⚠️ 設定が読み込めません")
    st.error("次の環境変数が設定されていません: " + ", ".join(missing))
    st.markdown("値を入力して保存し、アプリを再起動してください。")
    render_env_tab()


def _render_sidebar() -> str:
    ctx = get_context()
    with st.sidebar:
        st.markdown("### 📚 ReBooked")
        if ctx.user is None:
            with st.form("login_form"):
                email = st.text_input("メールアドレス")
                password = st.text_input("パスワード", type="password")
                if st.form_submit_button("ログイン", type="primary"):
                    error = login(email.strip(), password)
                    if error:
                        st.error(error)
                    else:
                        st.rerun()
        else:
            st.caption(f"ログイン中: {ctx.user.email or ctx.user.id}")
            if st.button("ログアウト"):
                logout()
                st.rerun()
        st.markdown("---")
        page = st.radio("ページ", list(PAGES.keys()))
        if not ctx.settings.maps_enabled:
            st.caption("🗺️ Google Maps が未設定のため、住所は手入力になります。")
        status = ctx.connection.snapshot()
        if not status.is_online:
            st.warning("接続が失われました。一部機能は利用できません。")
    return page


def run() -> None:
    setup_logging()
    missing = missing_required_env()
    if missing:
        render_env_fallback(missing)
        return
    page = _render_sidebar()
    PAGES[page]()


if __name__ == "__main__":
    st.set_page_config(page_title="ReBooked", page_icon="📚", layout="wide", initial_sidebar_state="expanded")
    run()
