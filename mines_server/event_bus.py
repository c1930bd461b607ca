import logging
from typing import Iterable

from redis.asyncio import Redis

from mines_server.models.schema_models import GameEventSchema

GLOBAL_CHANNEL = "mines:events"


def channel_for(game_id: int | None) -> str:
    """Game events go to game:{id}; delegation and governance events to the global channel."""
    if game_id is None:
        return GLOBAL_CHANNEL
    return f"game:{game_id}"


class EventPublisher:
    """Publish committed events to Redis pub/sub."""

    def __init__(self, redis: Redis):
        self.redis = redis

    async def publish(self, event: GameEventSchema) -> None:
        channel = channel_for(event.game_id)
        await self.redis.publish(channel, event.model_dump_json())

    async def publish_all(self, events: Iterable[GameEventSchema]) -> None:
        """Publish after commit. The state change already happened, so failures are only logged.

        Args:
            events (Iterable[GameEventSchema]): Events stored by the committed transaction
        """
        for event in events:
            try:
                await self.publish(event)
            except Exception as e:
                logging.error(f"Failed to publish {event.kind} event {event.event_id}: {e}")


def encode_sse(event: GameEventSchema) -> str:
    payload = event.model_dump_json()
    return f"event: {event.kind}\ndata: {payload}\n\n"
