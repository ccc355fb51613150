from collections import namedtuple

import pytest

from request_bridge.cache import MemoryCorrelationCache
from request_bridge.envelope import OperationStatus
from request_bridge.worker import ResultWorker
from scripts.echo_worker import echo_handler, handle_batches

Record = namedtuple("Record", "offset value")


@pytest.mark.asyncio
async def test_malformed_records_are_skipped_and_loop_continues():
    cache = MemoryCorrelationCache()
    worker = ResultWorker(cache, echo_handler, ttl_ms=1000)
    batches = {
        "bridge_requests-0": [
            Record(0, "correlation_id"),
            Record(1, ["correlation_id"]),
            Record(2, {"status": "CREATED"}),
            Record(3, {"correlation_id": "ok1", "kind": "echo", "payload": {"n": 1}}),
        ]
    }

    handled = await handle_batches(worker, batches)

    assert handled == 1
    stored = await cache.get("ok1")
    assert stored.status is OperationStatus.OK
    assert stored.response_data == {"kind": "echo", "payload": {"n": 1}}
