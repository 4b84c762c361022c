"""銀行口座ページ。Paystack サブアカウントの登録・更新。"""
from __future__ import annotations

import streamlit as st

from rebooked.backend.models import BankingDetails
from rebooked.payments.paystack import SA_BANKS, get_bank_code, is_valid_account_number
from rebooked.schemas import is_valid_email
from rebooked.web_ui.services import current_user_id, get_banking_workflow, get_requirements_workflow


def render_banking() -> None:
    st.title("🏦 銀行口座")
    if not current_user_id():
        st.info("ログインしてください。")
        return

    wf = get_banking_workflow()
    if wf.error:
        st.error(wf.error)

    if wf.has_banking_setup:
        col1, col2, col3 = st.columns(3)
        col1.metric("銀行", wf.bank_name or "-")
        col2.metric("口座番号", wf.masked_account_number or "-")
        col3.metric("ステータス", "有効" if wf.is_active else "審査中")
        st.caption(f"サブアカウント: {wf.subaccount_code or '-'}")
        st.markdown("### 口座情報の更新")
    else:
        st.info("売上を受け取るには銀行口座を登録してください。登録後、出品中の書籍に自動で紐付けます。")

    current = wf.banking_details
    with st.form("banking_form"):
        business_name = st.text_input("事業者名 / 氏名", value=current.business_name if current else "")
        email = st.text_input("メールアドレス", value=current.email if current else "")
        bank_index = SA_BANKS.index(current.bank_name) if current and current.bank_name in SA_BANKS else 0
        bank_name = st.selectbox("銀行", SA_BANKS, index=bank_index)
        account_number = st.text_input("口座番号", help="9〜11桁")
        holder = st.text_input("口座名義（任意）")
        validate_only = st.checkbox("登録前に口座番号を検証する", value=True)
        submitted = st.form_submit_button("💾 保存", type="primary")

    if not submitted:
        return

    errors = []
    if not business_name.strip():
        errors.append("事業者名を入力してください。")
    if not is_valid_email(email.strip()):
        errors.append("メールアドレスの形式が正しくありません。")
    if not is_valid_account_number(account_number):
        errors.append("口座番号は9〜11桁の数字で入力してください。")
    if errors:
        for e in errors:
            st.error(e)
        return

    bank_code = get_bank_code(bank_name) or ""
    if validate_only:
        check = wf.validate_account_number(account_number, bank_code)
        if not check.valid:
            st.error(f"口座番号を確認できません: {check.error or 'Invalid account'}")
            return
        if check.account_name:
            st.caption(f"口座名義: {check.account_name}")

    details = BankingDetails(
        business_name=business_name.strip(),
        email=email.strip(),
        bank_name=bank_name,
        bank_code=bank_code,
        account_number=account_number.replace(" ", ""),
        account_holder_name=holder.strip() or None,
    )
    result = wf.update_banking(details) if wf.has_banking_setup else wf.setup_banking(details)
    if result.success:
        get_requirements_workflow().refresh()
        st.success(f"✅ 保存しました（サブアカウント: {result.subaccount_code or '-'}）")
    else:
        st.error(result.error or "保存に失敗しました。")
