import json
from channels.db import database_sync_to_async
from channels.generic.websocket import AsyncWebsocketConsumer

from hms.models import Hospital


def hospital_group(hospital_id) -> str:
    return f"hospital.{hospital_id}"


@database_sync_to_async
def hospital_is_active(hospital_id) -> bool:
    return Hospital.objects.filter(pk=hospital_id, status="active").exists()


class UpdatesConsumer(AsyncWebsocketConsumer):
    """Pushes refresh events to the dashboards of one hospital."""

    async def connect(self):
        user = self.scope.get("user")
        self.hospital_id = self.scope["url_route"]["kwargs"]["hospital_id"]
        if not (user and user.is_authenticated):
            await self.close()
            return
        if user.role != "super_admin" and user.active_hospital_id != self.hospital_id:
            await self.close()
            return
        if not await hospital_is_active(self.hospital_id):
            await self.close()
            return
        self.group = hospital_group(self.hospital_id)
        await self.channel_layer.group_add(self.group, self.channel_name)
        await self.accept()
        await self.send(json.dumps({"type": "welcome", "hospitalId": self.hospital_id}))

    async def disconnect(self, close_code):
        if getattr(self, "group", None):
            await self.channel_layer.group_discard(self.group, self.channel_name)

    async def broadcast_refresh(self, event):
        # event: {"type": "broadcast.refresh", "topic": "campaigns", "ts": "...", ...}
        await self.send(json.dumps(event))
