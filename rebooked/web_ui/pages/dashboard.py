"""ダッシュボードページ（出品者の準備状況と確定待ち件数）。"""
from __future__ import annotations

import streamlit as st

from rebooked.store import prefs
from rebooked.web_ui.pages.constants import STEP_LABELS
from rebooked.web_ui.services import (
    current_user_id,
    get_banking_workflow,
    get_commit_workflow,
    get_prefs_connection,
    get_requirements_workflow,
)


def render_dashboard() -> None:
    """ダッシュボードを描画。"""
    st.title("🏠 ダッシュボード")
    user_id = current_user_id()
    if not user_id:
        st.info("サイドバーからログインすると、出品者の準備状況と確定待ちの注文を確認できます。")
        return

    conn = get_prefs_connection()
    if not prefs.has_seen_email_welcome(conn, user_id):
        st.success("🎉 ReBooked へようこそ！メールアドレスの確認が完了しました。")
        prefs.mark_email_welcome_seen(conn, user_id)

    requirements_wf = get_requirements_workflow()
    req = requirements_wf.requirements
    banking_wf = get_banking_workflow()
    pending = get_commit_workflow().pending_commits

    col1, col2, col3, col4 = st.columns(4)
    col1.metric("準備状況", f"{req.setup_completion_percentage}%")
    col2.metric("支払い受け取り", "可能" if req.can_receive_payments else "未完了")
    col3.metric("確定待ち", len(pending))
    col4.metric("口座", banking_wf.masked_account_number or "-")

    step = requirements_wf.next_required_step
    if step:
        st.warning(STEP_LABELS[step])
    else:
        st.success("✅ 支払いを受け取る準備ができています。")

    if pending and prefs.should_show_commit_reminder(conn, user_id):
        st.info("⏰ 確定待ちの注文があります。48時間以内に「確定待ち」ページで確定または辞退してください。")
        prefs.mark_popup_shown(conn, user_id, prefs.POPUP_COMMIT_REMINDER)

    if prefs.should_show_share_reminder(conn, user_id):
        col_msg, col_btn = st.columns([4, 1])
        col_msg.info("📣 プロフィールを共有して、もっと多くの購入者に書籍を見てもらいましょう。")
        if col_btn.button("閉じる", key="dismiss_share"):
            prefs.dismiss_share_reminder(conn, user_id)
            st.rerun()

    if st.button("🔄 更新"):
        requirements_wf.refresh()
        banking_wf.refresh()
        get_commit_workflow().refresh_pending_commits()
        st.rerun()
