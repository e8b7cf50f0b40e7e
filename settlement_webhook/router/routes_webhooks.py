import logging

from fastapi import APIRouter, Depends, Request

from settlement_webhook.dto.notification import ErrorResponse, WebhookAck
from settlement_webhook.services.webhook_service import PaymentWebhookService

router = APIRouter(prefix="/webhooks", tags=["webhooks"])
logger = logging.getLogger(__name__)

# Every method is routed here so non-POST requests get the webhook error envelope.
ALL_METHODS = ["GET", "HEAD", "OPTIONS", "POST", "PUT", "PATCH", "DELETE"]


def get_service(request: Request) -> PaymentWebhookService:
    return request.app.state.webhook_service


@router.api_route(
    "/payment-provider",
    methods=ALL_METHODS,
    response_model=WebhookAck,
    responses={
        401: {"model": ErrorResponse},
        405: {"model": ErrorResponse},
        422: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
        503: {"model": ErrorResponse},
    },
)
async def receive_payment_notification(
    request: Request,
    service: PaymentWebhookService = Depends(get_service),
) -> WebhookAck:
    outcome = await service.handle(request.method, await request.body())
    logger.debug("Payment notification handled. outcome=%s", outcome)
    return WebhookAck()
