import json

from channels.generic.websocket import AsyncWebsocketConsumer

from clinic.services.identity import IDENTITY_EVENT, identity_group


class IdentityConsumer(AsyncWebsocketConsumer):
    """Pushes ``identity.updated`` to every socket of the authenticated user.

    The event has no payload; the client re-reads ``/api/auth/me``.
    """

    async def connect(self):
        user = self.scope.get("user")
        if user is None or not user.is_authenticated:
            await self.close(code=4001)
            return
        self.group_name = identity_group(user.id)
        await self.channel_layer.group_add(self.group_name, self.channel_name)
        await self.accept()

    async def disconnect(self, close_code):
        if hasattr(self, "group_name"):
            await self.channel_layer.group_discard(self.group_name, self.channel_name)

    async def identity_updated(self, event):
        await self.send(json.dumps({"type": IDENTITY_EVENT}))
