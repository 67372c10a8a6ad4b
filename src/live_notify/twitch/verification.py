"""EventSub webhook parsing and signature verification.

The request body is read and parsed once into an ``InboundWebhook``; every
later step, including error paths, works from that parsed value. The
signature is an HMAC-SHA256 over ``message_id + timestamp + raw body``,
keyed by the broadcaster's signing secret and sent as ``sha256=<hex>``.
"""

import hashlib
import hmac
import logging

from fastapi import Request
from pydantic import ValidationError

from live_notify.errors import ValidationFailure
from live_notify.models.eventsub import EventSubEnvelope, InboundWebhook, WebhookHeaders
from live_notify.registry.signing_secrets import SecretStore

logger = logging.getLogger(__name__)

HEADER_MESSAGE_ID = "Twitch-Eventsub-Message-Id"
HEADER_TIMESTAMP = "Twitch-Eventsub-Message-Timestamp"
HEADER_SIGNATURE = "Twitch-Eventsub-Message-Signature"
HEADER_MESSAGE_TYPE = "Twitch-Eventsub-Message-Type"

SIGNATURE_PREFIX = "sha256="


def compute_signature(secret: str, message_id: str, timestamp: str, body: bytes) -> str:
    """Return the provider-format signature for a message."""
    message = message_id.encode("utf-8") + timestamp.encode("utf-8") + body
    digest = hmac.new(secret.encode("utf-8"), message, hashlib.sha256).hexdigest()
    return SIGNATURE_PREFIX + digest


class WebhookVerifier:
    """Authenticates webhook payloads against per-broadcaster signing secrets."""

    def __init__(self, secrets: SecretStore) -> None:
        self._secrets = secrets

    async def verify(
        self,
        message_id: str,
        timestamp: str,
        signature: str,
        correlation_key: str | None,
        body: bytes,
    ) -> bool:
        """Return True only if the signature matches. Never raises.

        An unknown correlation key has no secret and always fails.
        """
        if not correlation_key or not signature:
            return False
        try:
            secret = await self._secrets.get(correlation_key)
            if not secret:
                logger.warning("No signing secret for broadcaster %s", correlation_key)
                return False
            expected = compute_signature(secret, message_id, timestamp, body)
            return hmac.compare_digest(expected.encode("utf-8"), signature.encode("utf-8"))
        except Exception:
            logger.error(
                "Signature verification failed for broadcaster %s", correlation_key, exc_info=True
            )
            return False

    async def verify_webhook(self, webhook: InboundWebhook) -> bool:
        return await self.verify(
            webhook.headers.message_id,
            webhook.headers.timestamp,
            webhook.headers.signature,
            webhook.broadcaster_id,
            webhook.body,
        )


async def parse_webhook(request: Request) -> InboundWebhook:
    """FastAPI dependency: read headers and body once and parse them.

    Raises ValidationFailure (400) for missing headers or a malformed body.
    """
    body = await request.body()
    try:
        headers = WebhookHeaders(
            message_id=request.headers.get(HEADER_MESSAGE_ID, ""),
            timestamp=request.headers.get(HEADER_TIMESTAMP, ""),
            signature=request.headers.get(HEADER_SIGNATURE, ""),
            message_type=request.headers.get(HEADER_MESSAGE_TYPE, ""),
        )
    except ValidationError as exc:
        raise ValidationFailure("Missing or invalid EventSub headers") from exc
    if not headers.message_id or not headers.timestamp:
        raise ValidationFailure("Missing EventSub message id or timestamp")

    try:
        envelope = EventSubEnvelope.model_validate_json(body)
    except ValidationError as exc:
        raise ValidationFailure(f"Malformed EventSub payload: {exc.error_count()} error(s)") from exc

    return InboundWebhook(headers=headers, envelope=envelope, body=body)
