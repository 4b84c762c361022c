"""Web UI ページ用の定数・文言。"""
from __future__ import annotations

ENV_GUIDE_MARKDOWN = """
**Supabase の設定:**
1. Supabase ダッシュボードで対象プロジェクトを開く
2. 「Project Settings」→「API」を開く
3. **Project URL** を `SUPABASE_URL` に、**anon public** キーを `SUPABASE_ANON_KEY` に入力

**Paystack の設定:**
1. Paystack ダッシュボードの「Settings」→「API Keys & Webhooks」を開く
2. **Public Key**（`pk_test_` または `pk_live_` で始まる）を `PAYSTACK_PUBLIC_KEY` に入力

**任意:** `GOOGLE_MAPS_API_KEY` が無い場合、住所は手入力になります。
"""

STEP_LABELS = {
    "banking": "🏦 銀行口座を登録してください",
    "address": "📍 集荷先住所を登録してください",
    "books": "📚 書籍を1冊以上出品してください",
}
