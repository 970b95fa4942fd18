"""
X-VERIFY 校验值：``sha256_hex(signing_string) + "###" + salt_index``

同一算法既用于我方向网关鉴权（下单、查询），也用于校验网关推送（webhook），
各操作只是签名串不同；盐值密钥始终拼在签名串末尾，且不得写入日志。
"""
from __future__ import annotations

import hashlib
import hmac

from domain.payment.config import PAY_PATH, STATUS_PATH_PREFIX

SEPARATOR = "###"


class ChecksumSigner:
    def __init__(self, salt_key: str, salt_index: int = 1) -> None:
        self._salt_key = salt_key
        self._salt_index = salt_index

    def __repr__(self) -> str:
        return f"ChecksumSigner(salt_index={self._salt_index})"

    def sign(self, signing_string: str) -> str:
        digest = hashlib.sha256(signing_string.encode("utf-8")).hexdigest()
        return f"{digest}{SEPARATOR}{self._salt_index}"

    def verify(self, signing_string: str, checksum: str) -> bool:
        """完整比对 ``hex###index``（常量时间）"""
        if not checksum:
            return False
        expected = self.sign(signing_string)
        return hmac.compare_digest(expected.encode("utf-8"), checksum.encode("utf-8"))

    # 签名串

    def pay_signing_string(self, base64_payload: str) -> str:
        return base64_payload + PAY_PATH + self._salt_key

    def status_signing_string(self, status_path: str) -> str:
        return status_path + self._salt_key

    def webhook_signing_string(self, base64_response: str) -> str:
        return base64_response + self._salt_key

    # 便捷封装

    def sign_pay(self, base64_payload: str) -> str:
        return self.sign(self.pay_signing_string(base64_payload))

    def sign_status(self, merchant_id: str, transaction_id: str) -> str:
        return self.sign(self.status_signing_string(status_path(merchant_id, transaction_id)))

    def verify_webhook(self, base64_response: str, checksum: str) -> bool:
        return self.verify(self.webhook_signing_string(base64_response), checksum)


def status_path(merchant_id: str, transaction_id: str) -> str:
    return f"{STATUS_PATH_PREFIX}/{merchant_id}/{transaction_id}"
