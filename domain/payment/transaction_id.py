"""
商户侧交易号：``TXN_<毫秒时间戳>_<0..999>``

唯一性是尽力而为：同一毫秒内生成的两个交易号有 1/1000 的概率冲突，
需要强保证的调用方应在持久化交易号处加唯一约束。
"""
from __future__ import annotations

import random
import re
import time
from typing import Callable, Optional

PREFIX = "TXN"
SUFFIX_MAX = 999

TRANSACTION_ID_PATTERN = re.compile(r"^TXN_\d+_\d{1,3}$")


class TransactionIdGenerator:
    def __init__(
        self,
        clock_ms: Optional[Callable[[], int]] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self._clock_ms = clock_ms or (lambda: time.time_ns() // 1_000_000)
        self._rng = rng or random.SystemRandom()

    def next(self) -> str:
        return f"{PREFIX}_{self._clock_ms()}_{self._rng.randint(0, SUFFIX_MAX)}"
