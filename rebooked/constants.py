"""共通定数。テーブル名・Edge Function 名・ステータス値など。"""
from __future__ import annotations

# 手数料（書籍価格の10%をプラットフォームへ）
PLATFORM_COMMISSION_RATE = 0.10

# 販売確定（コミット）の猶予時間。表示用のみで、クライアント側では期限切れ処理をしない
COMMIT_WINDOW_HOURS = 48

CURRENCY = "ZAR"

# テーブル
TABLE_BOOKS = "books"
TABLE_ORDERS = "orders"
TABLE_PROFILES = "profiles"
TABLE_CONTACT_MESSAGES = "contact_messages"
TABLE_REPORTS = "reports"
TABLE_BANKING_SUBACCOUNTS = "banking_subaccounts"

# Edge Functions
FN_DECRYPT_BANKING_DETAILS = "decrypt-banking-details"
FN_INITIALIZE_PAYMENT = "initialize-paystack-payment"
FN_VERIFY_PAYMENT = "verify-paystack-payment"
FN_SPLIT_MANAGEMENT = "paystack-split-management"
FN_TRANSFER_MANAGEMENT = "paystack-transfer-management"
FN_MANAGE_SUBACCOUNT = "manage-paystack-subaccount"
FN_REFUND_MANAGEMENT = "refund-management"
FN_UPDATE_TRACKING_STATUS = "update-tracking-status"
FN_PUBLIC_CONFIG = "public-config"
FN_VALIDATE_ACCOUNT_NUMBER = "validate-account-number"

EDGE_FUNCTIONS = [
    FN_DECRYPT_BANKING_DETAILS,
    FN_INITIALIZE_PAYMENT,
    FN_VERIFY_PAYMENT,
    FN_SPLIT_MANAGEMENT,
    FN_TRANSFER_MANAGEMENT,
    FN_MANAGE_SUBACCOUNT,
    FN_REFUND_MANAGEMENT,
    FN_UPDATE_TRACKING_STATUS,
    FN_PUBLIC_CONFIG,
]

# 注文ステータス
ORDER_PENDING = "pending"
ORDER_PENDING_COMMIT = "pending_commit"
ORDER_COMMITTED = "committed"
ORDER_DECLINED = "declined"
ORDER_SHIPPED = "shipped"
ORDER_COMPLETED = "completed"
ORDER_CANCELLED = "cancelled"

# 銀行口座（サブアカウント）ステータス
BANKING_ACTIVE = "active"
BANKING_PENDING = "pending"

# 管理者向けレコードのステータス
MESSAGE_UNREAD = "unread"
MESSAGE_READ = "read"
REPORT_PENDING = "pending"
REPORT_RESOLVED = "resolved"
REPORT_DISMISSED = "dismissed"
USER_ACTIVE = "active"
USER_SUSPENDED = "suspended"
USER_BANNED = "banned"

# PostgREST のエラーコード
PGRST_NO_ROWS = "PGRST116"
PGRST_NO_RELATIONSHIP = "PGRST200"
PG_UNDEFINED_TABLE = "42P01"
PG_UNIQUE_VIOLATION = "23505"
PG_INSUFFICIENT_PRIVILEGE = "42501"

# ローカル保存キーの接頭辞
STORAGE_PREFIX = "rebooked"
POPUP_TRACKING_KEY = f"{STORAGE_PREFIX}_popup_tracking"
EMAIL_WELCOME_KEY = f"{STORAGE_PREFIX}_email_welcome"
SHARE_REMINDER_KEY = f"{STORAGE_PREFIX}_share_reminder_dismissed"

# キャッシュ期間（宣言のみ。どのコードも有効期限を強制しない）
CACHE_DURATIONS_SEC = {
    "books": 300,
    "profile": 600,
    "banking": 900,
}

DEFAULT_APP_URL = "https://rebookedsolutions.co.za"
