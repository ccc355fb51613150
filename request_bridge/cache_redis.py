# ============================================================================
#  SpiralReality Proprietary
#  Copyright (c) 2025 SpiralReality. All Rights Reserved.
#
#  NOTICE: This file contains confidential and proprietary information of
#  SpiralReality. ANY USE, COPYING, MODIFICATION, DISTRIBUTION, DISPLAY,
#  OR DISCLOSURE OF THIS FILE, IN WHOLE OR IN PART, IS STRICTLY PROHIBITED
#  WITHOUT THE PRIOR WRITTEN CONSENT OF SPIRALREALITY.
#
#  NO LICENSE IS GRANTED OR IMPLIED BY THIS FILE. THIS SOFTWARE IS PROVIDED
#  "AS IS", WITHOUT WARRANTY OF ANY KIND, EXPRESS OR IMPLIED, INCLUDING BUT
#  NOT LIMITED TO THE WARRANTIES OF MERCHANTABILITY, FITNESS FOR A PARTICULAR
#  PURPOSE AND NON-INFRINGEMENT. IN NO EVENT SHALL SPIRALREALITY OR ITS
#  SUPPLIERS BE LIABLE FOR ANY CLAIM, DAMAGES OR OTHER LIABILITY, WHETHER IN
#  AN ACTION OF CONTRACT, TORT OR OTHERWISE, ARISING FROM, OUT OF OR IN
#  CONNECTION WITH THE SOFTWARE OR THE USE OR OTHER DEALINGS IN THE SOFTWARE.
# ============================================================================

from __future__ import annotations

import asyncio
import json
from contextlib import asynccontextmanager
from typing import AsyncIterator, Mapping, Optional

from redis import asyncio as aioredis
from redis.exceptions import RedisError

from .cache import CorrelationCache
from .envelope import Envelope, ensure_mapping
from .errors import CacheUnavailableError


class RedisCorrelationCache(CorrelationCache):
    """Redis-backed correlation cache (redis-py asyncio client).

    Every ``put`` stores the envelope with a millisecond TTL and publishes a
    wake-up on a per-key channel inside the same pipeline.  ``get`` subscribes
    to that channel before its first read, so a write landing between the
    read and the wait is still delivered.

    Consumers that write results straight into Redis must publish on
    ``{prefix}:notify:{correlation_id}`` after the ``SET`` (or go through
    :meth:`put`).  A bare ``SET`` is only picked up when the waiter's deadline
    forces a final read.
    """

    def __init__(self, redis: aioredis.Redis, *, prefix: str = "bridge"):
        self.redis = redis
        self.prefix = prefix.strip(":") or "bridge"

    @classmethod
    def from_url(cls, url: str, *, prefix: str = "bridge") -> "RedisCorrelationCache":
        return cls(aioredis.from_url(url, decode_responses=False), prefix=prefix)

    def _key(self, key: str) -> str:
        return f"{self.prefix}:{key}"

    def _channel(self, key: str) -> str:
        return f"{self.prefix}:notify:{key}"

    @asynccontextmanager
    async def _subscribe(self, channel: str) -> AsyncIterator[aioredis.client.PubSub]:
        pubsub = self.redis.pubsub()
        await pubsub.subscribe(channel)
        try:
            yield pubsub
        finally:
            try:
                await pubsub.unsubscribe(channel)
            finally:
                await pubsub.aclose()

    async def _read(self, key: str) -> Optional[Envelope]:
        raw = await self.redis.get(self._key(key))
        if raw is None:
            return None
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8")
        return Envelope.from_payload(json.loads(raw))

    async def put(self, key: str, value: Envelope | Mapping, ttl_ms: int) -> None:
        data = json.dumps(ensure_mapping(value), ensure_ascii=False).encode("utf-8")
        try:
            async with self.redis.pipeline(transaction=True) as pipe:
                await (
                    pipe.set(self._key(key), data, px=int(ttl_ms))
                    .publish(self._channel(key), b"1")
                    .execute()
                )
        except RedisError as exc:
            raise CacheUnavailableError(f"Unable to write correlation id {key!r}: {exc}") from exc

    async def get(self, key: str, timeout_ms: int = 0) -> Optional[Envelope]:
        try:
            if timeout_ms <= 0:
                return await self._read(key)

            loop = asyncio.get_running_loop()
            deadline = loop.time() + timeout_ms / 1000.0
            async with self._subscribe(self._channel(key)) as pubsub:
                while True:
                    value = await self._read(key)
                    if value is not None:
                        return value
                    remaining = deadline - loop.time()
                    if remaining <= 0:
                        return None
                    await pubsub.get_message(ignore_subscribe_messages=True, timeout=remaining)
        except RedisError as exc:
            raise CacheUnavailableError(f"Unable to read correlation id {key!r}: {exc}") from exc

    async def delete(self, key: str) -> None:
        try:
            await self.redis.delete(self._key(key))
        except RedisError as exc:
            raise CacheUnavailableError(f"Unable to delete correlation id {key!r}: {exc}") from exc

    async def close(self) -> None:
        await self.redis.aclose()


__all__ = ["RedisCorrelationCache"]
