"""Ledgers and registries persisted in the key-value store.

Each namespace has exactly one owner: registration/configuration commands
write subscriptions, secrets and server configs; the event dispatcher writes
active-stream marks and delivered notifications.
"""

from live_notify.registry.active_streams import ActiveStreamTracker
from live_notify.registry.crosspost import CrossPostLedger
from live_notify.registry.maintenance import clear_all, dump_all
from live_notify.registry.notifications import DeliveredNotificationLedger
from live_notify.registry.server_config import ServerConfigStore
from live_notify.registry.signing_secrets import SecretStore
from live_notify.registry.subscriptions import SubscriptionRegistry

__all__ = [
    "ActiveStreamTracker",
    "CrossPostLedger",
    "DeliveredNotificationLedger",
    "SecretStore",
    "ServerConfigStore",
    "SubscriptionRegistry",
    "clear_all",
    "dump_all",
]
