from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.utils import timezone

from hms.realtime.consumers import hospital_group


def notify_hospital(hospital_id, topic: str, **extra) -> None:
    """Tell connected dashboards of a hospital that ``topic`` changed."""
    channel_layer = get_channel_layer()
    if channel_layer is None:
        return
    event = {"type": "broadcast.refresh", "topic": topic, "hospitalId": hospital_id, "ts": timezone.now().isoformat(), **extra}
    async_to_sync(channel_layer.group_send)(hospital_group(hospital_id), event)
