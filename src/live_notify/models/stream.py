"""Provider stream info model."""

from pydantic import BaseModel, Field

THUMBNAIL_WIDTH = 400
THUMBNAIL_HEIGHT = 255


class StreamInfo(BaseModel):
    """Current live session of a broadcaster, as returned by the provider API."""

    id: str  # Stream session id
    user_id: str
    user_login: str = ""
    user_name: str = ""
    game_name: str = ""
    title: str = ""
    thumbnail_url: str = ""
    started_at: str | None = None
    tags: list[str] = Field(default_factory=list)

    @property
    def url(self) -> str:
        return f"https://twitch.tv/{self.user_login}"

    @property
    def display_name(self) -> str:
        return self.user_name or self.user_login or self.user_id


def render_thumbnail(template: str) -> str:
    """Fill the ``{width}``/``{height}`` placeholders of a thumbnail template."""
    return template.replace("{width}", str(THUMBNAIL_WIDTH)).replace(
        "{height}", str(THUMBNAIL_HEIGHT)
    )
