import logging

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.utils import timezone

logger = logging.getLogger(__name__)

UPDATES_GROUP = "updates"


def broadcast(event: str, **payload) -> None:
    """Tell connected dashboards that ``event`` happened so they refetch."""
    channel_layer = get_channel_layer()
    if channel_layer is None:
        return
    now = timezone.now()
    message = {
        "type": "broadcast.refresh",
        "event": event,
        "version": int(now.timestamp()),
        "ts": now.isoformat(),
        **payload,
    }
    async_to_sync(channel_layer.group_send)(UPDATES_GROUP, message)
    logger.debug("broadcast %s %s", event, payload)
