"""Administration endpoints.

These are the registration and configuration commands that own the
subscription registry, signing secrets, and server configs, plus debug tools
for the key-value store. Every endpoint requires the X-Admin-Secret header.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel, Field

from live_notify.config import get_settings
from live_notify.errors import UpstreamFailure
from live_notify.models.guild import ServerNotifyConfig
from live_notify.registry import (
    SecretStore,
    ServerConfigStore,
    SubscriptionRegistry,
    clear_all,
    dump_all,
)
from live_notify.storage.client import get_kv
from live_notify.storage.kv import KVStore
from live_notify.twitch.client import TwitchClient, get_twitch_client

logger = logging.getLogger(__name__)


async def verify_admin(request: Request) -> None:
    """Reject requests whose X-Admin-Secret header does not match the configured secret.

    An unset admin secret disables every admin endpoint.
    """
    settings = get_settings()
    secret = request.headers.get("X-Admin-Secret", "")
    if not settings.admin_secret or secret != settings.admin_secret:
        raise HTTPException(status_code=403, detail="Invalid admin secret")


router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(verify_admin)])


class RegistrationRequest(BaseModel):
    broadcaster: str = Field(min_length=1)  # Numeric id or login name
    server_id: str = Field(min_length=1)


class DeleteKeyRequest(BaseModel):
    key: list[str]


async def _resolve_broadcaster(twitch: TwitchClient, broadcaster: str) -> str:
    if broadcaster.isdigit():
        return broadcaster
    try:
        broadcaster_id = await twitch.get_user_id(broadcaster)
    except UpstreamFailure as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    if broadcaster_id is None:
        raise HTTPException(status_code=404, detail=f"Unknown broadcaster: {broadcaster}")
    return broadcaster_id


@router.post("/subscriptions", status_code=201)
async def register_subscription(
    body: RegistrationRequest,
    kv: KVStore = Depends(get_kv),
    twitch: TwitchClient = Depends(get_twitch_client),
) -> dict:
    """Subscribe a server to a broadcaster's stream events.

    The first registration for a broadcaster generates its signing secret and
    creates the EventSub subscriptions. If that fails the secret is discarded
    so the next attempt starts over.
    """
    broadcaster_id = await _resolve_broadcaster(twitch, body.broadcaster)

    secrets = SecretStore(kv)
    secret, created = await secrets.ensure(broadcaster_id)
    if created and not await twitch.subscribe_to_stream_events(broadcaster_id, secret):
        await secrets.delete(broadcaster_id)
        raise HTTPException(
            status_code=502, detail="Failed to create EventSub subscriptions"
        )

    await SubscriptionRegistry(kv).add(broadcaster_id, body.server_id)
    return {
        "message": "Registration successful",
        "data": {"broadcaster_id": broadcaster_id, "server_id": body.server_id},
    }


@router.delete("/subscriptions/{broadcaster_id}/{server_id}")
async def remove_subscription(
    broadcaster_id: str, server_id: str, kv: KVStore = Depends(get_kv)
) -> dict:
    """Unsubscribe a server from a broadcaster. The signing secret is kept."""
    if not await SubscriptionRegistry(kv).remove(broadcaster_id, server_id):
        raise HTTPException(status_code=404, detail="Subscription not found")
    return {"message": "Subscription removed"}


@router.get("/subscriptions")
async def list_subscriptions(kv: KVStore = Depends(get_kv)) -> dict:
    return {"data": await SubscriptionRegistry(kv).list_all()}


@router.put("/servers/{server_id}")
async def configure_server(
    server_id: str, config: ServerNotifyConfig, kv: KVStore = Depends(get_kv)
) -> dict:
    """Set the server's notification channel and rules, replacing any previous config."""
    await ServerConfigStore(kv).set(server_id, config)
    logger.info("Configured server %s -> channel %s", server_id, config.channel_id)
    return {"message": "Notification channel configured", "data": config.model_dump()}


@router.get("/servers/{server_id}")
async def get_server_config(server_id: str, kv: KVStore = Depends(get_kv)) -> dict:
    config = await ServerConfigStore(kv).get(server_id)
    if config is None:
        raise HTTPException(status_code=404, detail="Server not configured")
    return {"data": config.model_dump()}


@router.get("/kv")
async def show_kv_contents(kv: KVStore = Depends(get_kv)) -> dict:
    data = await dump_all(kv)
    return {
        "message": "Current KV store contents",
        "data": {
            "totals": {namespace: len(entries) for namespace, entries in data.items()},
            "entries": data,
        },
    }


@router.delete("/kv")
async def clear_kv_contents(kv: KVStore = Depends(get_kv)) -> dict:
    """Delete every entry in one atomic transaction."""
    deleted = await clear_all(kv)
    logger.warning("Cleared %d KV entries", deleted)
    return {"message": "Successfully cleared all KV contents", "deleted": deleted}


@router.post("/kv/delete")
async def delete_kv_entry(body: DeleteKeyRequest, kv: KVStore = Depends(get_kv)) -> dict:
    if not body.key:
        raise HTTPException(
            status_code=400, detail="Invalid request body: key must be a non-empty array"
        )
    await kv.delete(tuple(body.key))
    return {"message": "Successfully deleted KV entry", "data": {"key": body.key}}
