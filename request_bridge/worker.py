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

"""Helpers for the downstream side of the correlation contract.

A consumer reads each published envelope, does its work, and writes exactly
one terminal envelope back into the cache under the same correlation id
before the entry's TTL runs out.  :func:`complete` performs that write;
:class:`ResultWorker` wraps a handler so every envelope it sees gets one.
"""

from __future__ import annotations

import logging
from typing import Any, AsyncIterator, Awaitable, Callable, Optional, Tuple, Union

from .cache import CorrelationCache
from .envelope import Envelope, OperationStatus, StatusLike, status_name

logger = logging.getLogger(__name__)

HandlerResult = Union[Envelope, Tuple[StatusLike, Any]]
Handler = Callable[[Envelope], Awaitable[HandlerResult]]


async def complete(
    cache: CorrelationCache,
    envelope: Envelope,
    status: StatusLike,
    response_data: Any = None,
    *,
    ttl_ms: int,
) -> Envelope:
    if status_name(status) == OperationStatus.CREATED.value:
        raise ValueError("Terminal envelopes cannot carry status CREATED")
    result = envelope.with_status(status, response_data)
    await cache.put(result.correlation_id, result, ttl_ms)
    return result


def _unpack(outcome: Any) -> Tuple[StatusLike, Any]:
    if isinstance(outcome, Envelope):
        status, data = outcome.status, outcome.response_data
    elif isinstance(outcome, tuple) and len(outcome) == 2:
        status, data = outcome
    else:
        raise TypeError(f"Handler returned {type(outcome).__name__}, expected an Envelope or (status, data)")
    if status_name(status) == OperationStatus.CREATED.value:
        raise ValueError("Handler outcome cannot carry status CREATED")
    return status, data


class ResultWorker:
    def __init__(self, cache: CorrelationCache, handler: Handler, *, ttl_ms: int):
        self.cache = cache
        self.handler = handler
        self.ttl_ms = ttl_ms
        self.processed = 0

    async def handle(self, envelope: Envelope) -> Envelope:
        """Run the handler and write its outcome as the terminal envelope.

        Handler exceptions and outcomes that cannot be written (a ``CREATED``
        status, or anything but an envelope or a ``(status, data)`` pair) are
        recorded as ``ERROR`` so the waiting caller still gets an answer.
        Cache faults on the final write propagate.
        """

        try:
            status, data = _unpack(await self.handler(envelope))
        except Exception as exc:
            logger.warning("handler failed for %s: %s", envelope.correlation_id, exc)
            status, data = OperationStatus.ERROR, {"error": str(exc)}
        finally:
            self.processed += 1
        return await complete(self.cache, envelope, status, data, ttl_ms=self.ttl_ms)

    async def run(self, source: AsyncIterator[Envelope], *, limit: Optional[int] = None) -> None:
        async for envelope in source:
            await self.handle(envelope)
            if limit is not None and self.processed >= limit:
                break


async def iter_queue(recv: Callable[[], Awaitable[Envelope]]) -> AsyncIterator[Envelope]:
    """Turn a ``recv`` coroutine (e.g. ``MemoryPublisher.recv``) into a stream."""

    while True:
        yield await recv()


__all__ = ["Handler", "ResultWorker", "complete", "iter_queue"]
