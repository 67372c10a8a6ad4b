"""Application configuration via pydantic-settings."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Twitch
    twitch_client_id: str = ""
    twitch_client_secret: str = ""
    twitch_callback_url: str = ""
    twitch_api_url: str = "https://api.twitch.tv/helix"
    twitch_auth_url: str = "https://id.twitch.tv/oauth2/token"

    # Messaging
    messaging_backend: str = "discord"  # "discord" or "slack"
    discord_bot_token: str = ""
    discord_api_url: str = "https://discord.com/api/v10"
    slack_bot_token: str = ""
    end_marker: str = "\U0001f51a"  # Slack expects an emoji name, e.g. "checkered_flag"

    # X cross-post
    x_consumer_key: str = ""
    x_consumer_secret: str = ""
    x_access_token: str = ""
    x_access_secret: str = ""
    x_target_broadcaster_id: str = ""
    x_post_prefix: str = "【ライブ配信開始】"
    x_post_ttl_seconds: int = 6 * 60 * 60

    # Storage
    kv_path: str = ""  # Empty keeps everything in memory

    # Admin
    admin_secret: str = ""

    # App
    environment: str = "development"
    log_level: str = "INFO"
    port: int = 8080
    http_timeout_seconds: float = 10.0

    @property
    def x_enabled(self) -> bool:
        """True when every credential needed for cross-posting is present."""
        return all(
            (
                self.x_consumer_key,
                self.x_consumer_secret,
                self.x_access_token,
                self.x_access_secret,
                self.x_target_broadcaster_id,
            )
        )


@lru_cache
def get_settings() -> Settings:
    """Return cached application settings. Lazy initialization to avoid import-time errors."""
    return Settings()
