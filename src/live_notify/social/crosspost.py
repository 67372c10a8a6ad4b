"""Best-effort cross-post of a stream start for the target broadcaster.

Runs detached from webhook handling: nothing here raises to the caller, and
a duplicate post for the same session is prevented by the cross-post ledger.
"""

import logging
import re

from live_notify.messaging.cards import known_game
from live_notify.models.stream import StreamInfo
from live_notify.registry.crosspost import CrossPostLedger
from live_notify.social.x import XClient

logger = logging.getLogger(__name__)


def build_post_text(prefix: str, title: str, url: str, game_name: str | None = None) -> str:
    """Compose the post: prefix, title, optional game hashtag, then the stream URL."""
    text = f"{prefix}\n{title}"
    game = known_game(game_name)
    if game:
        hashtag = re.sub(r"\s+", "", game)
        text += f"\n#{hashtag}"
    text += f"\n\n{url}"
    return text.strip()


class CrossPoster:
    def __init__(
        self,
        client: XClient,
        ledger: CrossPostLedger,
        target_broadcaster_id: str,
        prefix: str,
    ) -> None:
        self._client = client
        self._ledger = ledger
        self._target_broadcaster_id = target_broadcaster_id
        self._prefix = prefix

    def applies_to(self, broadcaster_id: str) -> bool:
        return bool(self._target_broadcaster_id) and broadcaster_id == self._target_broadcaster_id

    async def run(self, stream: StreamInfo) -> bool:
        """Post the stream start once per session. Returns True if a post was made.

        Failures are logged and the session claim is released so a later
        attempt may retry.
        """
        try:
            if not await self._ledger.claim(stream.id):
                logger.info("Session %s already cross-posted", stream.id)
                return False
        except Exception:
            logger.error("Cross-post ledger unavailable for session %s", stream.id, exc_info=True)
            return False

        text = build_post_text(self._prefix, stream.title, stream.url, stream.game_name)
        try:
            await self._client.post(text)
        except Exception:
            logger.error("Cross-post failed for session %s", stream.id, exc_info=True)
            try:
                await self._ledger.release(stream.id)
            except Exception:
                logger.warning("Could not release cross-post claim %s", stream.id, exc_info=True)
            return False
        return True

    async def aclose(self) -> None:
        await self._client.aclose()
