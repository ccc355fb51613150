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

from .bridge import RequestBridge
from .cache import CorrelationCache
from .config import BridgeConfig
from .errors import ConfigurationError
from .publisher import QueuePublisher


def load_publisher(config: BridgeConfig) -> QueuePublisher:
    name = config.publisher_backend
    if name == "memory":
        from .publisher import MemoryPublisher as Impl; return Impl(config.kafka.topic)
    if name == "kafka":
        from .publisher_kafka import KafkaPublisher as Impl; return Impl(config.kafka)
    if name == "mqtt":
        from .publisher_mqtt import MQTTPublisher as Impl; return Impl(config.mqtt)
    raise ConfigurationError(f"Unknown publisher backend: {name}")


def load_cache(config: BridgeConfig) -> CorrelationCache:
    name = config.cache_backend
    if name == "memory":
        from .cache import MemoryCorrelationCache as Impl; return Impl()
    if name == "redis":
        from .cache_redis import RedisCorrelationCache as Impl
        return Impl.from_url(config.redis.url, prefix=config.redis.prefix)
    raise ConfigurationError(f"Unknown cache backend: {name}")


def build_bridge(config: BridgeConfig) -> RequestBridge:
    return RequestBridge(load_cache(config), load_publisher(config), config)


__all__ = ["build_bridge", "load_cache", "load_publisher"]
