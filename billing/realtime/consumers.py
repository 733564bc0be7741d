import json
from channels.generic.websocket import AsyncWebsocketConsumer

from billing.services.bills import BILLING_GROUP


class BillingUpdatesConsumer(AsyncWebsocketConsumer):
    """Pushes bill and payment events to billing desk screens."""
    GROUP = BILLING_GROUP

    async def connect(self):
        await self.channel_layer.group_add(self.GROUP, self.channel_name)
        await self.accept()
        await self.send(json.dumps({"type": "welcome", "message": "connected"}))

    async def disconnect(self, close_code):
        await self.channel_layer.group_discard(self.GROUP, self.channel_name)

    async def billing_generated(self, event):
        # event: {"type": "billing.generated", "billId", "billNumber", "visitId", "total", "status"}
        await self.send(json.dumps(event))

    async def billing_payment(self, event):
        await self.send(json.dumps(event))
