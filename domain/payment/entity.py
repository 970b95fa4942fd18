"""
支付领域实体 - 支付请求与交易结果
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from enum import Enum
from typing import Any, Optional

from domain.common.exceptions import ValidationError

MINOR_UNITS_PER_MAJOR = Decimal(100)
MOBILE_NUMBER_DIGITS = 10


class PaymentStatus(str, Enum):
    """交易状态（UNKNOWN 仅表示尚无任何观测）"""
    UNKNOWN = "UNKNOWN"
    PENDING = "PENDING"
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"

    @property
    def is_terminal(self) -> bool:
        return self in (PaymentStatus.SUCCESS, PaymentStatus.FAILED)


def to_minor_units(amount: Decimal) -> int:
    """主单位金额折算为整数最小单位，ROUND_HALF_UP（0.005 -> 1）"""
    return int((amount * MINOR_UNITS_PER_MAJOR).quantize(Decimal(1), rounding=ROUND_HALF_UP))


def normalize_mobile_number(raw: str) -> str:
    digits = re.sub(r"\D", "", raw or "")
    return digits[-MOBILE_NUMBER_DIGITS:]


@dataclass(frozen=True)
class PaymentRequest:
    """
    支付发起请求（不可变，不持久化）

    业务规则：
    1. 金额必须是十进制且大于0，拒绝二进制浮点；折算为最小单位后至少为1
    2. 付款用户ID不能为空
    3. 手机号保留最后10位数字，且不能为空
    """

    amount: Decimal
    payer_user_id: str
    payer_mobile_number: str

    def __post_init__(self) -> None:
        object.__setattr__(self, "amount", self._coerce_amount(self.amount))
        if not (self.payer_user_id or "").strip():
            raise ValidationError("userId is required", field="userId")
        mobile = normalize_mobile_number(self.payer_mobile_number)
        if not mobile:
            raise ValidationError("mobileNumber is required", field="mobileNumber")
        object.__setattr__(self, "payer_user_id", self.payer_user_id.strip())
        object.__setattr__(self, "payer_mobile_number", mobile)

    @staticmethod
    def _coerce_amount(value: Any) -> Decimal:
        if isinstance(value, (float, bool)):
            raise ValidationError("amount must be a decimal value", field="amount")
        try:
            amount = value if isinstance(value, Decimal) else Decimal(str(value))
        except (InvalidOperation, ValueError) as exc:
            raise ValidationError("amount must be a decimal value", field="amount") from exc
        if not amount.is_finite() or amount <= 0:
            raise ValidationError(f"amount must be greater than 0: {value}", field="amount")
        # 四舍五入到最小货币单位后仍须至少为 1
        if to_minor_units(amount) < 1:
            raise ValidationError(f"amount is below the smallest currency unit: {value}", field="amount")
        return amount

    @property
    def amount_minor(self) -> int:
        return to_minor_units(self.amount)


@dataclass(frozen=True)
class PaymentOutcome:
    """单次观测（轮询响应或 webhook）得到的交易结果"""

    transaction_id: str
    status: PaymentStatus
    message: Optional[str] = None
    data: dict[str, Any] = field(default_factory=dict)

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    @classmethod
    def pending(cls, transaction_id: str, message: Optional[str] = None) -> "PaymentOutcome":
        return cls(transaction_id=transaction_id, status=PaymentStatus.PENDING, message=message)


def merge(old: Optional[PaymentOutcome], new: PaymentOutcome) -> PaymentOutcome:
    """
    单调合并：终态一旦出现即为权威值，之后的任何观测都被忽略。

    UNKNOWN -> PENDING -> {SUCCESS, FAILED}
    """
    if old is not None and old.is_terminal:
        return old
    return new
