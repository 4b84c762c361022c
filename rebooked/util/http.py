"""HTTP 関連：タイムアウト設定と、任意の呼び出しの時間制限。"""
import os
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeout
from typing import Callable, TypeVar

from rebooked.util.errors import NetworkError

T = TypeVar("T")


def get_timeout_sec() -> int:
    return int(os.getenv("HTTP_TIMEOUT_SEC", "30"))


def fetch_with_timeout(call: Callable[[], T], timeout_sec: float, label: str = "request") -> T:
    """
    任意の呼び出しを timeout_sec で打ち切る。
    超過時は NetworkError("Request timeout: <label>")。呼び出し自体はバックグラウンドで放棄される。
    """
    executor = ThreadPoolExecutor(max_workers=1)
    future = executor.submit(call)
    try:
        return future.result(timeout=timeout_sec)
    except FutureTimeout as e:
        future.cancel()
        raise NetworkError(f"Request timeout: {label}") from e
    finally:
        executor.shutdown(wait=False)
