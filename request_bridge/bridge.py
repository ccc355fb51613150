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

import logging
import time
from typing import Mapping, Optional

from .cache import CorrelationCache
from .config import BridgeConfig
from .envelope import Envelope, OperationStatus, ensure_envelope, status_name
from .publisher import QueuePublisher

logger = logging.getLogger(__name__)


class RequestBridge:
    """Hands envelopes to the queue and reunites them with their outcome.

    The cache entry under an envelope's correlation id is the only thing the
    bridge shares with the downstream consumer: the bridge writes ``CREATED``
    or clears it, the consumer overwrites it with a terminal envelope, and a
    waiting caller wakes up when that value appears.  No lock is held across
    the wait and nothing is sent to the consumer when a wait gives up.
    """

    def __init__(
        self,
        cache: CorrelationCache,
        publisher: QueuePublisher,
        config: Optional[BridgeConfig] = None,
    ):
        self.cache = cache
        self.publisher = publisher
        self.config = config or BridgeConfig()

    async def submit(self, envelope: Envelope | Mapping) -> Envelope:
        """Publish ``envelope`` and return straight away with status ``CREATED``."""

        request = ensure_envelope(envelope).with_status(OperationStatus.CREATED)
        key = request.correlation_id
        await self.publisher.send(key, request)
        await self.cache.put(key, request, self.config.messaging_ttl_ms)
        logger.debug("submitted %s (kind=%s)", key, request.kind)
        return request

    async def submit_and_wait(
        self,
        envelope: Envelope | Mapping,
        timeout_ms: Optional[int] = None,
    ) -> Envelope:
        """Publish ``envelope`` and wait for the consumer's terminal envelope.

        Any earlier entry for the id is deleted before publishing so a late
        result from a previous attempt cannot satisfy this wait.  If nothing
        arrives within ``timeout_ms`` (the configured default when ``None``)
        a ``TIMEOUT`` envelope is returned; infrastructure faults propagate.
        """

        if timeout_ms is None:
            timeout_ms = self.config.messaging_timeout_ms

        request = ensure_envelope(envelope).with_status(OperationStatus.CREATED)
        key = request.correlation_id

        await self.cache.delete(key)
        await self.publisher.send(key, request)

        started = time.perf_counter()
        result = await self.cache.get(key, timeout_ms)
        elapsed_ms = (time.perf_counter() - started) * 1000.0

        if result is None:
            logger.warning("no result for %s after %.0f ms", key, elapsed_ms)
            return Envelope.timed_out(key)

        logger.info("result for %s: %s after %.0f ms", key, status_name(result.status), elapsed_ms)
        return result


__all__ = ["RequestBridge"]
