"""Contract every outbound messaging backend satisfies."""

from typing import Protocol

from live_notify.messaging.cards import NotificationCard


class MessagingGateway(Protocol):
    """Sends messages to chat channels and annotates them with markers.

    Send methods return the posted message's id and raise UpstreamFailure
    when the backend rejects the call.
    """

    end_marker: str

    async def send_plain(self, channel_id: str, text: str) -> str:
        ...

    async def send_rich(self, channel_id: str, text: str, card: NotificationCard) -> str:
        ...

    async def add_marker(self, channel_id: str, message_id: str, marker: str) -> bool:
        ...

    async def aclose(self) -> None:
        ...
