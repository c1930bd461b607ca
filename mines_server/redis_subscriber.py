import logging
from typing import AsyncGenerator
from redis.asyncio import Redis

from mines_server.event_bus import channel_for, encode_sse
from mines_server.models.schema_models import GameEventSchema
from mines_server.services.game_db import GameService

HEART_BEAT = 15


class RedisSubscriber:
    """Redis subscriber class to handle SSE events of one game."""

    def __init__(self, game_service: GameService, game_id: int):
        """Initialize RedisSubscriber with the game service and game_id."""
        self.game_service: GameService = game_service
        self.game_id: int = game_id

    async def event_generator(self, redis: Redis) -> AsyncGenerator[str, None]:
        """Replay stored events of the game, then relay live ones.

        Args:
            redis (Redis): Redis connection object.
        """
        channel = channel_for(self.game_id)
        pubsub = redis.pubsub()
        # Subscribe before replaying so nothing committed in between is missed.
        await pubsub.subscribe(channel)
        try:
            seen = set()
            for event in await self.game_service.read_events(self.game_id):
                seen.add(event.event_id)
                yield encode_sse(event)

            while True:
                msg = await pubsub.get_message(ignore_subscribe_messages=True, timeout=HEART_BEAT)
                if msg is None:
                    yield ": keep-alive\n\n"
                    continue
                if msg["type"] != "message":
                    continue
                event = GameEventSchema.model_validate_json(msg["data"])
                if event.event_id in seen:
                    continue
                logging.debug(f"Relaying {event.kind} for game {self.game_id}")
                yield encode_sse(event)
        finally:
            logging.info("Unsubscribing from channel")
            await pubsub.unsubscribe(channel)
            await pubsub.aclose()
