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
from typing import Any, Dict, Mapping

from kafka import KafkaProducer
from kafka.errors import KafkaError

from .config import KafkaConfig
from .envelope import Envelope, ensure_mapping
from .errors import ConfigurationError, PublishError
from .publisher import QueuePublisher


def _acks(value: str) -> Any:
    return int(value) if str(value).isdigit() else value


class KafkaPublisher(QueuePublisher):
    """Kafka-backed publisher (kafka-python).

    Records are keyed by correlation id so every envelope for one id lands on
    the same partition.  The producer waits for all in-sync replicas and
    batches for a few milliseconds.
    """

    def __init__(self, config: KafkaConfig, *, producer: Any = None):
        if not config.topic:
            raise ConfigurationError("Kafka configuration has no default topic")
        self.default_topic = config.topic
        self.send_timeout_seconds = config.send_timeout_seconds

        if producer is None:
            try:
                producer = KafkaProducer(
                    bootstrap_servers=config.bootstrap_servers,
                    acks=_acks(config.acks),
                    linger_ms=config.linger_ms,
                    key_serializer=lambda k: k.encode("utf-8"),
                    value_serializer=lambda v: json.dumps(v).encode("utf-8"),
                )
            except KafkaError as exc:
                raise PublishError(f"Unable to reach Kafka at {config.bootstrap_servers}: {exc}") from exc
        self.producer = producer

    def _send_sync(self, topic: str, key: str, payload: Dict[str, Any]) -> Any:
        future = self.producer.send(topic, key=key, value=payload)
        return future.get(timeout=self.send_timeout_seconds)

    async def send_to_topic(self, topic: str, key: str, envelope: Envelope | Mapping) -> None:
        payload = ensure_mapping(envelope)
        try:
            await asyncio.to_thread(self._send_sync, topic, key, payload)
        except KafkaError as exc:
            raise PublishError(f"Kafka rejected {key!r} on {topic!r}: {exc}") from exc

    async def close(self) -> None:
        await asyncio.to_thread(self.producer.close)


__all__ = ["KafkaPublisher"]
