"""Per-server notification configuration and delivered-notification records."""

from pydantic import BaseModel, field_validator


class ServerNotifyConfig(BaseModel):
    """Delivery target and optional title rules for one chat server.

    Overwritten wholesale on every configuration command. ``rules=None`` (or
    an empty list) means no title filtering.
    """

    channel_id: str
    rules: list[str] | None = None

    @field_validator("rules")
    @classmethod
    def _drop_blank_rules(cls, rules: list[str] | None) -> list[str] | None:
        if rules is None:
            return None
        kept = [rule.strip() for rule in rules if rule.strip()]
        return kept or None

    def matches(self, title: str) -> bool:
        """True when the title contains any rule (case-insensitive), or no rules are set."""
        if not self.rules:
            return True
        folded = title.casefold()
        return any(rule.casefold() in folded for rule in self.rules)


class DeliveredNotification(BaseModel):
    """The message posted to a server for a broadcaster's current session."""

    broadcaster_id: str
    server_id: str
    channel_id: str
    message_id: str
