"""
交易状态仓储接口 - 轮询与 webhook 两个写入方共享的状态视图
"""
from abc import ABC, abstractmethod
from typing import Optional

from .entity import PaymentOutcome


class TransactionStateRepository(ABC):
    """所有写入都经过 `entity.merge`，并发写入方之间保持单调"""

    @abstractmethod
    async def get(self, transaction_id: str) -> Optional[PaymentOutcome]:
        """获取当前合并后的状态；从未观测过则返回 None"""
        pass

    @abstractmethod
    async def apply(self, outcome: PaymentOutcome) -> PaymentOutcome:
        """按 merge 规则写入一次观测（不存在则新建），返回合并后的状态"""
        pass

    @abstractmethod
    async def apply_if_tracked(self, outcome: PaymentOutcome) -> Optional[PaymentOutcome]:
        """
        仅当交易已被跟踪（本进程发起或经验签的 webhook 确认）时合并；
        未跟踪的交易不写入，返回 None。状态查询接口无鉴权，不能让它新建条目。
        """
        pass
