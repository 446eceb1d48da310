"""
Persistence of frontier snapshots to a JSON file or to Redis.
"""

import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional, Union

import redis.asyncio as redis

from ..crawler.exceptions import CorruptStateError
from ..crawler.url_frontier import FrontierState


def _decode_state(raw: Union[str, bytes]) -> FrontierState:
    try:
        if isinstance(raw, bytes):
            raw = raw.decode('utf-8')
        data = json.loads(raw)
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise CorruptStateError(f"State is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise CorruptStateError("State must be a JSON object")
    return FrontierState.from_dict(data)


class StateStore(ABC):
    """Saves and loads frontier snapshots."""

    @abstractmethod
    async def save(self, state: FrontierState):
        pass

    @abstractmethod
    async def load(self) -> Optional[FrontierState]:
        """Return the stored state, or None if nothing was saved."""


class FileStateStore(StateStore):
    """Stores the snapshot as a JSON document on disk."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self.logger = logging.getLogger(__name__)

    async def save(self, state: FrontierState):
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + '.tmp')
        with open(tmp_path, 'w', encoding='utf-8') as f:
            json.dump(state.to_dict(), f)
        tmp_path.replace(self.path)
        self.logger.info(f"Saved frontier state with {len(state.pending)} pending requests to {self.path}")

    async def load(self) -> Optional[FrontierState]:
        if not self.path.exists():
            return None
        with open(self.path, 'rb') as f:
            state = _decode_state(f.read())
        self.logger.info(f"Loaded frontier state from {self.path}")
        return state


class RedisStateStore(StateStore):
    """Stores the snapshot as a JSON string under a Redis key."""

    def __init__(self, redis_client: redis.Redis, key: str = 'browsercrawler:frontier_state'):
        self.redis_client = redis_client
        self.key = key
        self.logger = logging.getLogger(__name__)

    async def save(self, state: FrontierState):
        try:
            await self.redis_client.set(self.key, json.dumps(state.to_dict()))
            self.logger.info(f"Saved frontier state with {len(state.pending)} pending requests to Redis key {self.key}")
        except Exception as e:
            self.logger.error(f"Error saving frontier state to Redis: {e}")
            raise

    async def load(self) -> Optional[FrontierState]:
        raw = await self.redis_client.get(self.key)
        if raw is None:
            return None
        self.logger.info(f"Loaded frontier state from Redis key {self.key}")
        return _decode_state(raw)
