"""Backend-neutral composition of stream announcements."""

from pydantic import BaseModel, Field

from live_notify.models.stream import StreamInfo

LIVE_COLOR = 0x9146FF

# Placeholder the provider uses for streams with no category set
_UNSET_GAME = "未設定"


class NotificationCard(BaseModel):
    """Rich announcement content; each gateway renders it in its own format."""

    broadcaster_name: str
    title: str
    url: str
    game_name: str | None = None
    tags: list[str] = Field(default_factory=list)
    thumbnail_url: str | None = None
    started_at: str | None = None
    color: int = LIVE_COLOR


def known_game(game_name: str | None) -> str | None:
    """Return the game name, or None when the provider reports no category."""
    if not game_name or game_name == _UNSET_GAME:
        return None
    return game_name


def build_stream_card(stream: StreamInfo) -> NotificationCard:
    return NotificationCard(
        broadcaster_name=stream.display_name,
        title=stream.title or stream.url,
        url=stream.url,
        game_name=known_game(stream.game_name),
        tags=stream.tags,
        thumbnail_url=stream.thumbnail_url or None,
        started_at=stream.started_at,
    )


def build_announcement_text(stream: StreamInfo) -> str:
    """Plain text accompanying the card. Uses ``**bold**`` markdown."""
    return f"\U0001f534 **{stream.display_name}** started streaming!\n{stream.url}"
