import json

from channels.generic.websocket import AsyncWebsocketConsumer

from core.services.realtime import UPDATES_GROUP


class UpdatesConsumer(AsyncWebsocketConsumer):
    """Pushes refresh hints to dashboards; clients refetch over REST."""

    async def connect(self):
        await self.channel_layer.group_add(UPDATES_GROUP, self.channel_name)
        await self.accept()
        await self.send(json.dumps({"type": "welcome", "message": "connected"}))

    async def disconnect(self, close_code):
        await self.channel_layer.group_discard(UPDATES_GROUP, self.channel_name)

    async def broadcast_refresh(self, event):
        # {"type": "broadcast.refresh", "event": "referral.accepted", "version": int, "ts": "...", ...}
        await self.send(json.dumps(event, default=str))
