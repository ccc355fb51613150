import asyncio

import paho.mqtt.client as mqtt
import pytest
from kafka.errors import KafkaTimeoutError

from request_bridge.config import KafkaConfig, MQTTConfig
from request_bridge.envelope import Envelope, OperationStatus
from request_bridge.errors import ConfigurationError, PublishError
from request_bridge.publisher import MemoryPublisher
from request_bridge.publisher_kafka import KafkaPublisher
from request_bridge.publisher_mqtt import MQTTPublisher


class _RecordFuture:
    def __init__(self, error=None):
        self.error = error

    def get(self, timeout=None):
        if self.error is not None:
            raise self.error
        return {"partition": 0, "offset": 1}


class DummyProducer:
    def __init__(self, *, error=None):
        self.sent = []
        self.error = error
        self.closed = False

    def send(self, topic, key=None, value=None):
        self.sent.append((topic, key, value))
        return _RecordFuture(self.error)

    def close(self):
        self.closed = True


class _MessageInfo:
    def __init__(self, rc, published=True):
        self.rc = rc
        self._published = published

    def wait_for_publish(self, timeout=None):
        return None

    def is_published(self):
        return self._published


class DummyMQTTClient:
    def __init__(self, rc=mqtt.MQTT_ERR_SUCCESS, published=True):
        self.rc = rc
        self.published_flag = published
        self.published = []
        self.stopped = False
        self.disconnected = False

    def publish(self, topic, payload, qos=0):
        self.published.append((topic, payload, qos))
        return _MessageInfo(self.rc, self.published_flag)

    def loop_stop(self):
        self.stopped = True

    def disconnect(self):
        self.disconnected = True


@pytest.mark.asyncio
async def test_memory_publisher_delivers_snapshot_per_topic():
    publisher = MemoryPublisher("requests")
    envelope = Envelope.new("kind", {"n": 1}, correlation_id="k")

    await publisher.send("k", envelope)
    envelope.payload["n"] = 2
    await publisher.send_to_topic("audit", "k", envelope)

    first = await asyncio.wait_for(publisher.recv(), timeout=0.5)
    audit = await asyncio.wait_for(publisher.recv("audit"), timeout=0.5)

    assert first.payload == {"n": 1}
    assert audit.payload == {"n": 2}
    assert [(topic, key) for topic, key, _ in publisher.sent] == [("requests", "k"), ("audit", "k")]


@pytest.mark.asyncio
async def test_kafka_publisher_keys_records_by_correlation_id():
    producer = DummyProducer()
    publisher = KafkaPublisher(KafkaConfig(topic="bridge_requests"), producer=producer)
    envelope = Envelope.new("payments", {"amount": 5}, correlation_id="abc123")

    await publisher.send("abc123", envelope)
    await publisher.send_to_topic("elements", "abc123", envelope)

    assert producer.sent[0][0] == "bridge_requests"
    assert producer.sent[0][1] == "abc123"
    assert producer.sent[0][2]["correlation_id"] == "abc123"
    assert producer.sent[0][2]["status"] == OperationStatus.CREATED.value
    assert producer.sent[1][0] == "elements"


@pytest.mark.asyncio
async def test_kafka_errors_become_publish_errors():
    publisher = KafkaPublisher(KafkaConfig(), producer=DummyProducer(error=KafkaTimeoutError("no ack")))

    with pytest.raises(PublishError):
        await publisher.send("k", Envelope(correlation_id="k"))


def test_kafka_publisher_requires_default_topic():
    with pytest.raises(ConfigurationError):
        KafkaPublisher(KafkaConfig(topic=""), producer=DummyProducer())


@pytest.mark.asyncio
async def test_kafka_close_closes_producer():
    producer = DummyProducer()
    async with KafkaPublisher(KafkaConfig(), producer=producer):
        pass
    assert producer.closed


@pytest.mark.asyncio
async def test_mqtt_publisher_publishes_json_with_qos():
    client = DummyMQTTClient()
    publisher = MQTTPublisher(MQTTConfig(topic="bridge/requests", qos=1), client=client)

    await publisher.send("k", Envelope(correlation_id="k", kind="elements"))

    topic, payload, qos = client.published[0]
    assert topic == "bridge/requests"
    assert '"correlation_id": "k"' in payload
    assert qos == 1


@pytest.mark.asyncio
async def test_mqtt_failures_become_publish_errors():
    refused = MQTTPublisher(MQTTConfig(), client=DummyMQTTClient(rc=mqtt.MQTT_ERR_NO_CONN))
    with pytest.raises(PublishError):
        await refused.send("k", Envelope(correlation_id="k"))

    unacked = MQTTPublisher(MQTTConfig(), client=DummyMQTTClient(published=False))
    with pytest.raises(PublishError):
        await unacked.send("k", Envelope(correlation_id="k"))


@pytest.mark.asyncio
async def test_mqtt_close_stops_loop():
    client = DummyMQTTClient()
    await MQTTPublisher(MQTTConfig(), client=client).close()
    assert client.stopped and client.disconnected
