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
import time
from typing import Callable, Dict, Mapping, Optional, Tuple

from .envelope import Envelope, ensure_envelope


class CorrelationCache:
    """Key/value store holding at most one envelope per correlation id.

    ``get`` is the only operation allowed to suspend: it returns an existing
    entry straight away, otherwise it waits for a write to that key until the
    timeout elapses and then returns ``None``.  Not finding a value is never
    an error; losing the backing store is, and implementations raise
    :class:`~request_bridge.errors.CacheUnavailableError` for it.
    """

    async def put(self, key: str, value: Envelope | Mapping, ttl_ms: int) -> None:
        raise NotImplementedError

    async def get(self, key: str, timeout_ms: int = 0) -> Optional[Envelope]:
        raise NotImplementedError

    async def delete(self, key: str) -> None:
        raise NotImplementedError

    async def close(self) -> None:
        return None

    async def __aenter__(self) -> "CorrelationCache":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> Optional[bool]:
        await self.close()
        return None


class MemoryCorrelationCache(CorrelationCache):
    """In-process cache for a single event loop.

    Writers notify an :class:`asyncio.Condition`; waiters re-check their key
    after every notification so a write to some other id only costs them a
    dictionary lookup.
    """

    def __init__(self, *, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._entries: Dict[str, Tuple[Envelope, float]] = {}
        self._changed = asyncio.Condition()

    def _lookup(self, key: str) -> Optional[Envelope]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if self._clock() >= expires_at:
            del self._entries[key]
            return None
        return value

    async def put(self, key: str, value: Envelope | Mapping, ttl_ms: int) -> None:
        envelope = ensure_envelope(value)
        async with self._changed:
            self._entries[key] = (envelope, self._clock() + ttl_ms / 1000.0)
            self._changed.notify_all()

    async def get(self, key: str, timeout_ms: int = 0) -> Optional[Envelope]:
        deadline = self._clock() + max(timeout_ms, 0) / 1000.0
        async with self._changed:
            while True:
                value = self._lookup(key)
                if value is not None:
                    return value
                remaining = deadline - self._clock()
                if remaining <= 0:
                    return None
                try:
                    await asyncio.wait_for(self._changed.wait(), timeout=remaining)
                except asyncio.TimeoutError:
                    return self._lookup(key)

    async def delete(self, key: str) -> None:
        async with self._changed:
            self._entries.pop(key, None)

    def __len__(self) -> int:
        return sum(1 for key in list(self._entries) if self._lookup(key) is not None)


__all__ = ["CorrelationCache", "MemoryCorrelationCache"]
