"""
FastAPI应用主入口
"""
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager

from api.routes import payments as payments_routes
from api.middleware import RequestIDMiddleware, LoggingMiddleware
from application.ports.payment_gateway import PaymentGateway
from application.services.payment_service import PaymentService
from core.config import settings
from core.exceptions import register_exception_handlers
from core.response import success_response
from core.logging_config import get_logger, configure_logging
from core.settings import payment_settings
from domain.payment.config import GatewayConfig
from domain.payment.repository import TransactionStateRepository
from infrastructure.external.payments import get_payment_gateway
from infrastructure.repositories.transaction_state_repository import InMemoryTransactionStateRepository


# 初始化日志：在入口处显式配置，避免模块导入时的副作用
configure_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """应用生命周期管理"""
    config: GatewayConfig = app.state.gateway_config
    logger.info(
        "payment_gateway_configured",
        provider=app.state.payment_service.gateway.provider,
        environment=config.environment.value,
        merchant_id=config.merchant_id or None,
        salt_index=config.salt_index,
        host_url=config.host_url,
    )
    yield
    # 关闭时释放出站 HTTP 连接池
    await app.state.payment_service.aclose()
    logger.info("application_shutdown", message="Application shutdown")


def create_app(
    gateway_config: Optional[GatewayConfig] = None,
    *,
    gateway: Optional[PaymentGateway] = None,
    repository: Optional[TransactionStateRepository] = None,
) -> FastAPI:
    """组合根：配置只在这里读取一次，然后按引用注入各组件。"""
    config = gateway_config or payment_settings.gateway_config()
    if gateway is None:
        gateway = get_payment_gateway(
            config,
            payment_settings.default_provider,
            timeouts=payment_settings.timeouts.model_dump(),
        )
    service = PaymentService(
        gateway=gateway,
        repository=repository or InMemoryTransactionStateRepository(),
        poll_interval=payment_settings.polling.interval_seconds,
        poll_max_attempts=payment_settings.polling.max_attempts,
    )

    app = FastAPI(
        title=settings.PROJECT_NAME,
        version=settings.VERSION,
        debug=settings.DEBUG,
        lifespan=lifespan,
        description="Payment gateway integration: initiate, status polling and webhook verification",
    )
    app.state.gateway_config = config
    app.state.payment_service = service

    # 添加中间件（注意顺序：从下往上执行）
    app.add_middleware(LoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "X-VERIFY", "X-MERCHANT-ID", "X-Request-ID"],
    )

    # 注册全局异常处理器
    register_exception_handlers(app)

    # 注册路由
    app.include_router(payments_routes.router, prefix="/api")

    @app.get("/health", tags=["Health"])
    async def health_check():
        """健康检查端点"""
        return success_response(data={"status": "healthy"}, message="OK")

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level=settings.log_level.lower(),
        log_config=None,
    )
