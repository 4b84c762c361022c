"""
Web UI 用サービス集約エントリポイント。
接続コンテキストとワークフローを session_state に1つずつ保持し、ログイン・ログアウトを提供。
"""
from __future__ import annotations

import logging
from typing import Optional

import streamlit as st

from rebooked.backend import auth
from rebooked.backend.client import BackendContext
from rebooked.config import load_config, load_settings
from rebooked.store import db
from rebooked.util.errors import RebookedError
from rebooked.workflow.banking import BankingWorkflow, SellerRequirementsWorkflow
from rebooked.workflow.commit import CommitWorkflow
from rebooked.workflow.notify import ERROR, SUCCESS, Notifier, Toast

logger = logging.getLogger(__name__)

_TOAST_ICONS = {SUCCESS: "✅", ERROR: "❌"}


def _show_toast(toast: Toast) -> None:
    st.toast(toast.message, icon=_TOAST_ICONS.get(toast.level, "ℹ️"))


def get_context() -> BackendContext:
    """セッションごとに1つの BackendContext。"""
    if "ctx" not in st.session_state:
        config = load_config()
        st.session_state.ctx = BackendContext(
            load_settings(),
            timeout_sec=int(config["http"]["timeout_sec"]),
            commission_rate=float(config["payments"]["commission_rate"]),
            commit_window_hours=int(config["commit"]["window_hours"]),
        )
    return st.session_state.ctx


def get_prefs_connection():
    if "prefs_conn" not in st.session_state:
        conn = db.get_connection()
        db.init_schema(conn)
        st.session_state.prefs_conn = conn
    return st.session_state.prefs_conn


def get_commit_workflow() -> CommitWorkflow:
    if "commit_workflow" not in st.session_state:
        st.session_state.commit_workflow = CommitWorkflow(get_context(), Notifier(sink=_show_toast))
    return st.session_state.commit_workflow


def get_banking_workflow() -> BankingWorkflow:
    if "banking_workflow" not in st.session_state:
        st.session_state.banking_workflow = BankingWorkflow(get_context())
    return st.session_state.banking_workflow


def get_requirements_workflow() -> SellerRequirementsWorkflow:
    if "requirements_workflow" not in st.session_state:
        st.session_state.requirements_workflow = SellerRequirementsWorkflow(get_context())
    return st.session_state.requirements_workflow


def login(email: str, password: str) -> Optional[str]:
    """ログイン。失敗時はエラーメッセージを返す。"""
    ctx = get_context()
    try:
        auth.sign_in_with_password(ctx, email, password)
    except RebookedError as e:
        logger.warning("ログイン失敗: %s", e.message)
        return e.message
    get_banking_workflow().refresh()
    get_requirements_workflow().refresh()
    get_commit_workflow().refresh_pending_commits()
    return None


def logout() -> None:
    ctx = get_context()
    try:
        auth.sign_out(ctx)
    except RebookedError as e:
        logger.warning("ログアウト時のエラー: %s", e.message)
    ctx.reset()
    for key in ("commit_workflow", "banking_workflow", "requirements_workflow"):
        st.session_state.pop(key, None)


def current_user_id() -> Optional[str]:
    user = get_context().user
    return user.id if user else None
