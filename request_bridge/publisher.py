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
import copy
from typing import Dict, List, Mapping, Optional, Tuple

from .envelope import Envelope, ensure_envelope


class QueuePublisher:
    """Fire-and-forget, at-least-once publisher keyed by correlation id.

    A call that returns only means the broker accepted the envelope; nothing
    about its processing ever comes back through this interface.
    """

    default_topic: str = ""

    async def send(self, key: str, envelope: Envelope | Mapping) -> None:
        await self.send_to_topic(self.default_topic, key, envelope)

    async def send_to_topic(self, topic: str, key: str, envelope: Envelope | Mapping) -> None:
        raise NotImplementedError

    async def close(self) -> None:
        return None

    async def __aenter__(self) -> "QueuePublisher":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> Optional[bool]:
        await self.close()
        return None


class MemoryPublisher(QueuePublisher):
    """In-process publisher with one asyncio queue per topic."""

    def __init__(self, default_topic: str = "bridge_requests"):
        self.default_topic = default_topic
        self._queues: Dict[str, asyncio.Queue[Envelope]] = {}
        self.sent: List[Tuple[str, str, Envelope]] = []

    def _queue(self, topic: str) -> asyncio.Queue[Envelope]:
        queue = self._queues.get(topic)
        if queue is None:
            queue = self._queues[topic] = asyncio.Queue()
        return queue

    async def send_to_topic(self, topic: str, key: str, envelope: Envelope | Mapping) -> None:
        # Snapshot so later changes by the caller never reach the consumer.
        snapshot = copy.deepcopy(ensure_envelope(envelope))
        self.sent.append((topic, key, snapshot))
        await self._queue(topic).put(snapshot)

    async def recv(self, topic: Optional[str] = None) -> Envelope:
        return await self._queue(topic or self.default_topic).get()


__all__ = ["MemoryPublisher", "QueuePublisher"]
