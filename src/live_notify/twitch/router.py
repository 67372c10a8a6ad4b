"""EventSub webhook router."""

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse, PlainTextResponse, Response

from live_notify.errors import LiveNotifyError, ValidationFailure
from live_notify.models.eventsub import InboundWebhook, MessageType
from live_notify.twitch.handlers import EventDispatcher, get_dispatcher
from live_notify.twitch.verification import parse_webhook

logger = logging.getLogger(__name__)

router = APIRouter(prefix="", tags=["twitch"])


@router.post("/twitch/webhooks")
async def twitch_webhooks(
    webhook: InboundWebhook = Depends(parse_webhook),
    dispatcher: EventDispatcher = Depends(get_dispatcher),
) -> Response:
    """Receive EventSub webhooks.

    The verification handshake is answered with the raw challenge and never
    touches secrets or ledgers. Every other message is authenticated and
    dispatched; unexpected errors still produce a JSON acknowledgment.
    """
    if webhook.headers.message_type == MessageType.VERIFICATION:
        if webhook.envelope.challenge is None:
            raise ValidationFailure("Verification request is missing its challenge")
        logger.info("Answering EventSub verification for %s", webhook.envelope.subscription.type)
        return PlainTextResponse(webhook.envelope.challenge)

    try:
        result = await dispatcher.dispatch(webhook)
    except LiveNotifyError:
        raise
    except Exception as exc:
        logger.error("Error handling webhook %s", webhook.headers.message_id, exc_info=True)
        return JSONResponse(
            {"error": "Internal server error", "details": str(exc)}, status_code=500
        )
    return JSONResponse(result)
