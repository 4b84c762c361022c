"""確定待ちページ。注文ごとに確定 / 辞退ボタン。"""
from __future__ import annotations

import streamlit as st

from rebooked.util.errors import RebookedError
from rebooked.web_ui.data_queries import pending_commits_dataframe
from rebooked.web_ui.services import current_user_id, get_commit_workflow


def render_commits() -> None:
    st.title("📦 確定待ち")
    if not current_user_id():
        st.info("ログインしてください。")
        return

    wf = get_commit_workflow()
    col_title, col_btn = st.columns([3, 1])
    with col_title:
        st.markdown("購入された書籍は **48時間以内** に確定してください。辞退すると購入者に全額返金されます。")
    with col_btn:
        if st.button("🔄 更新", help="確定待ちの注文を再取得します"):
            wf.refresh_pending_commits()

    pending = wf.pending_commits
    if not pending:
        st.info("確定待ちの注文はありません。")
        return

    st.dataframe(pending_commits_dataframe(pending), use_container_width=True, hide_index=True)
    st.markdown("---")

    for p in pending:
        with st.container(border=True):
            st.markdown(f"**{p.title}** / {p.author}")
            st.caption(f"購入者: {p.buyer_name} ・ 受取額: R{p.earnings:.2f} ・ 期限: {p.expires_at or '-'}")
            col1, col2 = st.columns(2)
            if col1.button("✅ 確定", key=f"commit_{p.id}", disabled=wf.is_committing, type="primary"):
                try:
                    wf.commit_book(p.id)
                except RebookedError:
                    # 通知は表示済み
                    pass
                st.rerun()
            if col2.button("❌ 辞退", key=f"decline_{p.id}", disabled=wf.is_declining):
                try:
                    wf.decline_book(p.id)
                except RebookedError:
                    pass
                st.rerun()
