import asyncio

import pytest

from request_bridge.bridge import RequestBridge
from request_bridge.cache import MemoryCorrelationCache
from request_bridge.config import BridgeConfig
from request_bridge.envelope import Envelope, OperationStatus
from request_bridge.publisher import MemoryPublisher
from request_bridge.status_mapper import to_response
from request_bridge.worker import ResultWorker, complete, iter_queue


@pytest.mark.asyncio
async def test_complete_writes_terminal_envelope_under_same_id():
    cache = MemoryCorrelationCache()
    request = Envelope.new("payments", {"amount": 3}, correlation_id="abc123")

    result = await complete(cache, request, OperationStatus.INSUFFICIENT_BALANCE, {"needed": 3}, ttl_ms=1000)

    stored = await cache.get("abc123")
    assert stored is result
    assert stored.status is OperationStatus.INSUFFICIENT_BALANCE
    assert stored.payload == {"amount": 3}


@pytest.mark.asyncio
async def test_complete_rejects_created():
    with pytest.raises(ValueError):
        await complete(MemoryCorrelationCache(), Envelope(correlation_id="k"), "CREATED", ttl_ms=10)


@pytest.mark.asyncio
async def test_handler_exception_becomes_error_envelope():
    cache = MemoryCorrelationCache()

    async def handler(envelope):
        raise RuntimeError("ledger offline")

    worker = ResultWorker(cache, handler, ttl_ms=1000)
    result = await worker.handle(Envelope(correlation_id="k"))

    assert result.status is OperationStatus.ERROR
    assert result.response_data == {"error": "ledger offline"}
    assert worker.processed == 1


@pytest.mark.asyncio
async def test_handler_may_return_envelope():
    cache = MemoryCorrelationCache()

    async def handler(envelope):
        return envelope.with_status(OperationStatus.EXISTS, {"id": "e1"})

    worker = ResultWorker(cache, handler, ttl_ms=1000)
    await worker.handle(Envelope(correlation_id="k"))

    stored = await cache.get("k")
    assert stored.status is OperationStatus.EXISTS
    assert stored.response_data == {"id": "e1"}


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "outcome",
    [
        (OperationStatus.CREATED, None),
        "OK",
        (OperationStatus.OK, {"a": 1}, "extra"),
        None,
    ],
)
async def test_unwritable_outcome_becomes_error_envelope(outcome):
    cache = MemoryCorrelationCache()

    async def handler(envelope):
        return outcome

    worker = ResultWorker(cache, handler, ttl_ms=1000)
    result = await worker.handle(Envelope(correlation_id="bad"))

    assert result.status is OperationStatus.ERROR
    assert "error" in result.response_data
    assert (await cache.get("bad")) is result
    assert worker.processed == 1


@pytest.mark.asyncio
async def test_worker_keeps_serving_after_unwritable_outcome():
    cache = MemoryCorrelationCache()
    publisher = MemoryPublisher()

    async def handler(envelope):
        if envelope.correlation_id == "bad":
            return OperationStatus.CREATED, None
        return OperationStatus.OK, {"id": envelope.correlation_id}

    worker = ResultWorker(cache, handler, ttl_ms=1000)
    worker_task = asyncio.create_task(worker.run(iter_queue(publisher.recv), limit=2))

    await publisher.send("bad", Envelope(correlation_id="bad"))
    await publisher.send("good", Envelope(correlation_id="good"))
    await asyncio.wait_for(worker_task, timeout=1.0)

    bad = await cache.get("bad", 300)
    good = await cache.get("good", 300)
    assert bad.status is OperationStatus.ERROR
    assert good.status is OperationStatus.OK
    assert good.response_data == {"id": "good"}


@pytest.mark.asyncio
async def test_bridge_and_worker_round_trip_in_process():
    cache = MemoryCorrelationCache()
    publisher = MemoryPublisher()
    bridge = RequestBridge(cache, publisher, BridgeConfig(messaging_timeout_ms=2000))

    async def handler(envelope):
        if envelope.payload.get("known"):
            return OperationStatus.OK, {"echo": envelope.payload}
        return OperationStatus.NOT_FOUND, None

    worker = ResultWorker(cache, handler, ttl_ms=1000)
    worker_task = asyncio.create_task(worker.run(iter_queue(publisher.recv), limit=2))

    found = await bridge.submit_and_wait(Envelope.new("elements.get", {"known": True}))
    missing = await bridge.submit_and_wait(Envelope.new("elements.get", {"known": False}))
    await asyncio.wait_for(worker_task, timeout=1.0)

    assert to_response(found) == (200, {"echo": {"known": True}})
    code, body = to_response(missing)
    assert code == 404
    assert body["status"] == "NOT_FOUND"
