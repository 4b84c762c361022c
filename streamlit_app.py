"""
Streamlit Community Cloud 用エントリーポイント。
rebooked/web.py の run() を使用。
"""
import sys
from pathlib import Path

# プロジェクトルートをパスに追加（import より前に必須）
ROOT = Path(__file__).resolve().parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import streamlit as st

# 必ず最初にページ設定（Streamlit の仕様）
st.set_page_config(
    page_title="ReBooked",
    page_icon="📚",
    layout="wide",
    initial_sidebar_state="expanded",
)

try:
    from rebooked.web import run
except Exception as e:
    st.error("アプリの読み込みに失敗しました。")
    st.exception(e)
else:
    run()
