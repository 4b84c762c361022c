"""簡易ロギング。ワークフローの結果サマリを必ず出せるようにする。"""
import logging
import sys
from typing import Any

def setup_logging(level: int = logging.INFO) -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stdout,
    )

def log_action_summary(
    logger: logging.Logger,
    action: str,
    success: bool,
    target_id: str = "",
    notes: str = "",
    **extra: Any,
) -> None:
    fields = " ".join(f"{k}={v}" for k, v in sorted(extra.items()))
    logger.info(
        "action_summary action=%s success=%s target=%s notes=%s %s",
        action,
        success,
        target_id or "(none)",
        notes or "(none)",
        fields,
    )
