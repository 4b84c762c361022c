"""管理者ページ：通報・停止中ユーザー・問い合わせ・書籍の一括削除。"""
from __future__ import annotations

import streamlit as st

from rebooked.admin import books, contact, moderation
from rebooked.config import load_config
from rebooked.constants import MESSAGE_UNREAD, REPORT_DISMISSED, REPORT_PENDING, REPORT_RESOLVED
from rebooked.util.errors import RebookedError
from rebooked.web_ui.data_queries import (
    books_dataframe,
    contact_messages_dataframe,
    reports_dataframe,
    suspended_users_dataframe,
)
from rebooked.web_ui.services import current_user_id, get_context


def render_admin() -> None:
    st.title("🛡️ 管理")
    if not current_user_id():
        st.info("管理者アカウントでログインしてください。")
        return

    tab1, tab2, tab3 = st.tabs(["モデレーション", "問い合わせ", "書籍"])
    with tab1:
        _render_moderation_tab()
    with tab2:
        _render_contact_tab()
    with tab3:
        _render_books_tab()


def _render_moderation_tab() -> None:
    ctx = get_context()
    limit = int(load_config()["admin"]["moderation_limit"])
    try:
        data = moderation.load_moderation_data(ctx, limit=limit)
    except RebookedError as e:
        st.error(e.message)
        return

    st.markdown("### 通報")
    reports_df = reports_dataframe(data)
    if reports_df.empty:
        st.info("通報はありません。")
    else:
        st.dataframe(reports_df, use_container_width=True, hide_index=True)
        pending = [r for r in data.reports if r.status == REPORT_PENDING]
        if pending:
            labels = {f"{r.book_title or r.id} - {r.reason}": r.id for r in pending}
            choice = st.selectbox("対応する通報", list(labels.keys()))
            col1, col2 = st.columns(2)
            for col, status, label in ((col1, REPORT_RESOLVED, "✅ 解決済み"), (col2, REPORT_DISMISSED, "🗑️ 却下")):
                if col.button(label, key=f"report_{status}"):
                    _run(lambda s=status: moderation.update_report_status(ctx, labels[choice], s), "更新しました")

    st.markdown("### 停止中ユーザー")
    users_df = suspended_users_dataframe(data)
    if users_df.empty:
        st.info("停止中のユーザーはいません。")
        return
    st.dataframe(users_df, use_container_width=True, hide_index=True)
    names = {f"{u.name} ({u.email})": u.id for u in data.suspended_users}
    target = st.selectbox("ユーザー", list(names.keys()))
    if st.button("🔓 停止を解除"):
        _run(lambda: moderation.unsuspend_user(ctx, names[target]), "停止を解除しました")


def _render_contact_tab() -> None:
    ctx = get_context()
    try:
        messages = contact.get_all_contact_messages(ctx)
    except RebookedError as e:
        st.error(e.message)
        return
    unread = [m for m in messages if m.status == MESSAGE_UNREAD]
    st.metric("未読", len(unread))
    df = contact_messages_dataframe(messages)
    if df.empty:
        st.info("問い合わせはありません。")
        return
    st.dataframe(df, use_container_width=True, hide_index=True)
    for m in unread:
        with st.expander(f"✉️ {m.subject} - {m.name}"):
            st.write(m.message)
            if st.button("既読にする", key=f"read_{m.id}"):
                _run(lambda mid=m.id: contact.mark_message_as_read(ctx, mid), "既読にしました")
    if st.button("🗑️ すべて削除", help="問い合わせを全件削除します（元に戻せません）"):
        _run(lambda: contact.clear_all_messages(ctx), "全件削除しました")


def _render_books_tab() -> None:
    ctx = get_context()
    try:
        listed = books.list_books(ctx, limit=200)
    except RebookedError as e:
        st.error(e.message)
        return
    df = books_dataframe(listed)
    if df.empty:
        st.info("書籍はありません。")
        return
    st.dataframe(df, use_container_width=True, hide_index=True)
    options = {f"{b.title} ({b.id})": b.id for b in listed}
    selected = st.multiselect("削除する書籍", list(options.keys()))
    if selected and st.button("🗑️ 選択した書籍を削除", type="primary"):
        result = books.delete_books_bulk(ctx, [options[s] for s in selected])
        if result.success:
            st.success(f"{result.data['deleted']} 件削除しました")
            st.rerun()
        else:
            st.error(result.error)


def _run(action, success_message: str) -> None:
    try:
        action()
    except RebookedError as e:
        st.error(e.message)
        return
    st.success(success_message)
    st.rerun()
