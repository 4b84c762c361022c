"""画面に出す一時通知（トースト）。画面側は sink を差し込む。"""
from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass
from typing import Callable, Optional

logger = logging.getLogger(__name__)

SUCCESS = "success"
ERROR = "error"
INFO = "info"

HISTORY_LIMIT = 50


@dataclass
class Toast:
    level: str
    message: str


class Notifier:
    """通知を履歴に積み、sink があれば即座に渡す。履歴は新しい HISTORY_LIMIT 件だけ残す。"""

    def __init__(self, sink: Optional[Callable[[Toast], None]] = None) -> None:
        self.sink = sink
        self.history: deque[Toast] = deque(maxlen=HISTORY_LIMIT)

    def _push(self, level: str, message: str) -> None:
        toast = Toast(level=level, message=message)
        self.history.append(toast)
        if self.sink is not None:
            self.sink(toast)

    def success(self, message: str) -> None:
        self._push(SUCCESS, message)

    def error(self, message: str) -> None:
        logger.debug("toast error: %s", message)
        self._push(ERROR, message)

    def info(self, message: str) -> None:
        self._push(INFO, message)

    def last(self) -> Optional[Toast]:
        return self.history[-1] if self.history else None

    def clear(self) -> None:
        self.history.clear()
