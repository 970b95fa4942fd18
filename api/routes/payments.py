"""
Payments API routes.

Thin hosting adapter over `PaymentService`: translates HTTP shapes into
service calls and `PaymentResult`s back into responses. No signing or status
mapping happens here.
"""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from api.dependencies import get_payment_service
from application.dtos.payments import (
    InitiatePayment,
    InitiateResponse,
    StatusResponse,
    WebhookAck,
    status_response,
)
from application.services.payment_service import PaymentService


router = APIRouter(tags=["Payments"])


@router.post("/initiate", summary="Initiate payment", response_model=InitiateResponse)
async def initiate_payment(payload: InitiatePayment, service: PaymentService = Depends(get_payment_service)):
    initiated = (await service.initiate_payment(payload)).unwrap()
    return InitiateResponse(url=initiated.redirect_url, transactionId=initiated.transaction_id)


@router.get(
    "/status",
    summary="Query payment status",
    response_model=StatusResponse,
    response_model_exclude_none=True,
)
async def payment_status(
    transaction_id: Optional[str] = Query(default=None, alias="transactionId"),
    service: PaymentService = Depends(get_payment_service),
):
    outcome = (await service.check_status(transaction_id)).unwrap()
    return status_response(outcome.status, message=outcome.message, data=outcome.data)


@router.post("/webhook", summary="Gateway notification", response_model=WebhookAck)
async def payment_webhook(request: Request, service: PaymentService = Depends(get_payment_service)):
    raw_body = await request.body()
    headers = {k: v for k, v in request.headers.items()}
    result = await service.handle_webhook(headers, raw_body)
    # Validation, configuration and signature failures are never acknowledged;
    # everything after verification already resolved to success.
    result.unwrap()
    return WebhookAck()
