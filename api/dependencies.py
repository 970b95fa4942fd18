"""
API依赖项 - 从应用状态获取组合根中装配好的服务
"""
from fastapi import Request

from application.services.payment_service import PaymentService


async def get_payment_service(request: Request) -> PaymentService:
    return request.app.state.payment_service
