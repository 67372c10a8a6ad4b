"""Inbound EventSub webhook models.

The request is parsed exactly once into an ``InboundWebhook`` which keeps the
raw body alongside the parsed envelope, so signature checks use the exact
bytes the provider signed.
"""

from enum import Enum

from pydantic import BaseModel, Field


class MessageType(str, Enum):
    """Values of the Twitch-Eventsub-Message-Type header."""

    VERIFICATION = "webhook_callback_verification"
    NOTIFICATION = "notification"
    REVOCATION = "revocation"


class EventType(str, Enum):
    """Subscription types this service handles."""

    STREAM_ONLINE = "stream.online"
    STREAM_OFFLINE = "stream.offline"


class WebhookHeaders(BaseModel):
    """Signature-related headers of an EventSub request."""

    message_id: str
    timestamp: str
    signature: str = ""  # Absent on unsigned requests; verification fails closed
    message_type: MessageType


class SubscriptionInfo(BaseModel):
    """The ``subscription`` descriptor of an EventSub envelope."""

    id: str = ""
    type: str
    status: str | None = None
    condition: dict[str, str] = Field(default_factory=dict)

    @property
    def broadcaster_id(self) -> str | None:
        return self.condition.get("broadcaster_user_id")


class StreamEvent(BaseModel):
    """Payload of stream.online / stream.offline events."""

    broadcaster_user_id: str
    broadcaster_user_login: str = ""
    broadcaster_user_name: str = ""
    id: str | None = None  # Stream session id (stream.online only)
    type: str | None = None  # "live", "playlist", ...
    started_at: str | None = None


class EventSubEnvelope(BaseModel):
    """JSON body of an EventSub request."""

    subscription: SubscriptionInfo
    event: StreamEvent | None = None
    challenge: str | None = None  # Verification handshake only


class InboundWebhook(BaseModel):
    """A parsed webhook request: headers, envelope, and the raw signed body."""

    headers: WebhookHeaders
    envelope: EventSubEnvelope
    body: bytes

    @property
    def broadcaster_id(self) -> str | None:
        """Correlation key selecting the signing secret.

        Prefers the subscription condition and falls back to the event payload.
        """
        if self.envelope.subscription.broadcaster_id:
            return self.envelope.subscription.broadcaster_id
        if self.envelope.event is not None:
            return self.envelope.event.broadcaster_user_id
        return None
