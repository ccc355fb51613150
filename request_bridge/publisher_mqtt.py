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
from typing import Any, Mapping

import paho.mqtt.client as mqtt

from .config import MQTTConfig
from .envelope import Envelope, ensure_mapping
from .errors import PublishError
from .publisher import QueuePublisher


class MQTTPublisher(QueuePublisher):
    """MQTT-backed publisher (paho-mqtt).

    MQTT has no partition key; ordering holds per topic and the correlation id
    travels inside the envelope only.
    """

    def __init__(self, config: MQTTConfig, *, client: Any = None, ack_timeout_seconds: float = 5.0):
        self.default_topic = config.topic
        self.qos = config.qos
        self.ack_timeout_seconds = ack_timeout_seconds

        if client is None:
            client = mqtt.Client(mqtt.CallbackAPIVersion.VERSION2)
            try:
                client.connect(config.host, config.port)
            except OSError as exc:
                raise PublishError(f"Unable to reach MQTT broker {config.host}:{config.port}: {exc}") from exc
            client.loop_start()
        self.client = client

    def _publish_sync(self, topic: str, data: str) -> None:
        info = self.client.publish(topic, data, qos=self.qos)
        if info.rc != mqtt.MQTT_ERR_SUCCESS:
            raise PublishError(f"MQTT publish to {topic!r} failed: {mqtt.error_string(info.rc)}")
        if self.qos > 0:
            info.wait_for_publish(timeout=self.ack_timeout_seconds)
            if not info.is_published():
                raise PublishError(f"MQTT broker did not acknowledge publish to {topic!r}")

    async def send_to_topic(self, topic: str, key: str, envelope: Envelope | Mapping) -> None:
        data = json.dumps(ensure_mapping(envelope))
        try:
            await asyncio.to_thread(self._publish_sync, topic, data)
        except (OSError, RuntimeError) as exc:
            raise PublishError(f"MQTT publish of {key!r} to {topic!r} failed: {exc}") from exc

    async def close(self) -> None:
        self.client.loop_stop()
        self.client.disconnect()


__all__ = ["MQTTPublisher"]
