"""計算ツールページ：代金の分割と配送料見積もり（ログイン不要）。"""
from __future__ import annotations

import streamlit as st

from rebooked.config import load_config
from rebooked.courier.models import Address, Parcel, QuoteRequest
from rebooked.courier.pricing import calculate_zone, cheapest_quote, get_courier_guy_quotes
from rebooked.payments.split import calculate_payment_split
from rebooked.web_ui.data_queries import quotes_dataframe, split_dataframe

PROVINCES = [
    "Eastern Cape",
    "Free State",
    "Gauteng",
    "KwaZulu-Natal",
    "Limpopo",
    "Mpumalanga",
    "North West",
    "Northern Cape",
    "Western Cape",
]


def render_tools() -> None:
    st.title("🧮 計算ツール")
    tab1, tab2 = st.tabs(["代金の分割", "配送料見積もり"])
    with tab1:
        _render_split_tab()
    with tab2:
        _render_quote_tab()


def _render_split_tab() -> None:
    rate = float(load_config()["payments"]["commission_rate"])
    col1, col2 = st.columns(2)
    price = col1.number_input("書籍価格 (R)", min_value=0.0, value=100.0, step=5.0)
    delivery = col2.number_input("配送料 (R)", min_value=0.0, value=0.0, step=5.0)
    split = calculate_payment_split(price, delivery, commission_rate=rate)
    st.caption(f"手数料率: {rate:.0%}（書籍価格に対して、四捨五入）")
    st.dataframe(split_dataframe(split), use_container_width=True, hide_index=True)


def _render_quote_tab() -> None:
    col1, col2 = st.columns(2)
    with col1:
        st.markdown("#### 発送元")
        from_city = st.text_input("市", value="Cape Town", key="from_city")
        from_province = st.selectbox("州", PROVINCES, index=PROVINCES.index("Western Cape"), key="from_province")
    with col2:
        st.markdown("#### お届け先")
        to_city = st.text_input("市", value="Johannesburg", key="to_city")
        to_province = st.selectbox("州", PROVINCES, index=PROVINCES.index("Gauteng"), key="to_province")
    weight = st.number_input("重さ (kg)", min_value=0.1, value=1.0, step=0.5)

    origin = Address(city=from_city.strip(), province=from_province)
    destination = Address(city=to_city.strip(), province=to_province)
    quotes = get_courier_guy_quotes(QuoteRequest(origin, destination, Parcel(weight=weight)))
    st.caption(f"区間: {calculate_zone(origin, destination)}")
    df = quotes_dataframe(quotes)
    if df.empty:
        st.warning("見積もりを取得できませんでした。")
        return
    st.dataframe(df, use_container_width=True, hide_index=True)
    best = cheapest_quote(quotes)
    if best:
        st.success(f"最安: {best.service_name} R{best.price:.2f}")
