"""Social network cross-posting of stream starts."""

from live_notify.social.crosspost import CrossPoster, build_post_text
from live_notify.social.x import XClient

__all__ = ["CrossPoster", "XClient", "build_post_text"]
