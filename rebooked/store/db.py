"""端末側に残す小さな設定値（SQLite）。テーブル作成と接続。"""
import os
import sqlite3
from pathlib import Path
from typing import Optional

# デフォルトはプロジェクトルートの data/local_prefs.db
def _default_db_path() -> str:
    base = Path(__file__).resolve().parent.parent.parent
    data_dir = base / "data"
    data_dir.mkdir(parents=True, exist_ok=True)
    return str(data_dir / "local_prefs.db")

def get_connection(db_path: Optional[str] = None) -> sqlite3.Connection:
    path = db_path or os.getenv("LOCAL_PREFS_DB_PATH") or _default_db_path()
    if path != ":memory:":
        Path(path).parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(path, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    return conn

def init_schema(conn: sqlite3.Connection) -> None:
    # 後勝ち（ロックなし）。key は "<接頭辞>_<user_id>"
    conn.executescript("""
        CREATE TABLE IF NOT EXISTS local_prefs (
            key TEXT PRIMARY KEY,
            value TEXT NOT NULL,
            updated_at TEXT NOT NULL
        );
    """)
    conn.commit()
