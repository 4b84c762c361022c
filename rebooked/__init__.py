"""ReBooked マーケットプレイス用クライアント（Supabase / Paystack / 配送料金）。"""

__version__ = "1.0.0"
