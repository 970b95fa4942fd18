"""
交易状态仓储的进程内实现

`apply` 的读与写之间没有 await，在事件循环上每次合并都是原子的，无需加锁。
状态随进程重启丢失；只跟踪本进程发起或经 webhook 确认的交易。
"""
from __future__ import annotations

from typing import Optional

from core.logging_config import get_logger
from domain.payment.entity import PaymentOutcome, merge
from domain.payment.repository import TransactionStateRepository


logger = get_logger(__name__)


class InMemoryTransactionStateRepository(TransactionStateRepository):
    def __init__(self) -> None:
        self._states: dict[str, PaymentOutcome] = {}

    async def get(self, transaction_id: str) -> Optional[PaymentOutcome]:
        return self._states.get(transaction_id)

    async def apply(self, outcome: PaymentOutcome) -> PaymentOutcome:
        old = self._states.get(outcome.transaction_id)
        merged = merge(old, outcome)
        self._states[outcome.transaction_id] = merged
        if merged is not outcome:
            logger.info(
                "transaction_state_observation_ignored",
                transaction_id=outcome.transaction_id,
                current=merged.status.value,
                observed=outcome.status.value,
            )
        elif old is None or old.status != merged.status:
            logger.info(
                "transaction_state_changed",
                transaction_id=outcome.transaction_id,
                previous=old.status.value if old else "UNKNOWN",
                current=merged.status.value,
            )
        return merged

    async def apply_if_tracked(self, outcome: PaymentOutcome) -> Optional[PaymentOutcome]:
        if outcome.transaction_id not in self._states:
            return None
        return await self.apply(outcome)

    def __len__(self) -> int:
        return len(self._states)
