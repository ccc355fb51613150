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

import json
import os
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

from .errors import ConfigurationError

CONFIG_FILE_ENV = "REQUEST_BRIDGE_CONFIG"


@dataclass
class KafkaConfig:
    bootstrap_servers: str = "localhost:9092"
    topic: str = "bridge_requests"
    acks: str = "all"
    linger_ms: int = 5
    send_timeout_seconds: float = 10.0


@dataclass
class MQTTConfig:
    host: str = "localhost"
    port: int = 1883
    topic: str = "bridge/requests"
    qos: int = 1


@dataclass
class RedisConfig:
    url: str = "redis://localhost:6379/0"
    prefix: str = "bridge"


@dataclass
class BridgeConfig:
    messaging_ttl_ms: int = 60_000
    messaging_timeout_ms: int = 10_000
    publisher_backend: str = "memory"
    cache_backend: str = "memory"
    log_level: str = "INFO"
    kafka: KafkaConfig = field(default_factory=KafkaConfig)
    mqtt: MQTTConfig = field(default_factory=MQTTConfig)
    redis: RedisConfig = field(default_factory=RedisConfig)


def _env(name: str, default: Optional[str] = None) -> Optional[str]:
    return os.environ.get(name) or default


def _first(*values: Any) -> Any:
    """Return the first value that was actually set; falsy file values count."""

    for value in values:
        if value is not None:
            return value
    return None


def _read_file(path: str) -> Dict[str, Any]:
    try:
        with open(path, "r", encoding="utf-8") as handle:
            data = json.load(handle)
    except (OSError, json.JSONDecodeError) as exc:
        raise ConfigurationError(f"Unable to read bridge config {path!r}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigurationError(f"Bridge config {path!r} must hold a JSON object")
    return data


def _section(base: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    value = base.get(name) or {}
    if not isinstance(value, Mapping):
        raise ConfigurationError(f"Config section {name!r} must be an object")
    return value


def _int(value: Any, name: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"{name} must be an integer, got {value!r}") from exc


def load_bridge_config(path: Optional[str] = None) -> BridgeConfig:
    """Build a :class:`BridgeConfig` from an optional JSON file and the environment.

    The file (``path`` or ``$REQUEST_BRIDGE_CONFIG``) supplies base values.
    Environment variables win over the file: the ``REQUEST_BRIDGE_*`` names
    first, then the shared backend names such as ``KAFKA_TOPIC`` or
    ``REDIS_URL``.
    """

    path = path or _env(CONFIG_FILE_ENV)
    base: Mapping[str, Any] = _read_file(path) if path else {}
    defaults = BridgeConfig()

    kafka_base = _section(base, "kafka")
    mqtt_base = _section(base, "mqtt")
    redis_base = _section(base, "redis")

    kafka = KafkaConfig(
        bootstrap_servers=(
            _env("REQUEST_BRIDGE_KAFKA_BOOTSTRAP_SERVERS")
            or _env("KAFKA_BOOTSTRAP_SERVERS")
            or _first(kafka_base.get("bootstrap_servers"), defaults.kafka.bootstrap_servers)
        ),
        topic=(
            _env("REQUEST_BRIDGE_KAFKA_TOPIC")
            or _env("KAFKA_TOPIC")
            or _first(kafka_base.get("topic"), defaults.kafka.topic)
        ),
        acks=str(kafka_base.get("acks", defaults.kafka.acks)),
        linger_ms=_int(kafka_base.get("linger_ms", defaults.kafka.linger_ms), "kafka.linger_ms"),
        send_timeout_seconds=float(
            kafka_base.get("send_timeout_seconds", defaults.kafka.send_timeout_seconds)
        ),
    )

    mqtt = MQTTConfig(
        host=_env("MQTT_HOST") or _first(mqtt_base.get("host"), defaults.mqtt.host),
        port=_int(_env("MQTT_PORT") or _first(mqtt_base.get("port"), defaults.mqtt.port), "MQTT_PORT"),
        topic=_env("MQTT_TOPIC") or _first(mqtt_base.get("topic"), defaults.mqtt.topic),
        qos=_int(mqtt_base.get("qos", defaults.mqtt.qos), "mqtt.qos"),
    )

    redis = RedisConfig(
        url=_env("REDIS_URL") or _first(redis_base.get("url"), defaults.redis.url),
        prefix=_env("REDIS_PREFIX") or _first(redis_base.get("prefix"), defaults.redis.prefix),
    )

    ttl_ms = _int(
        _env("REQUEST_BRIDGE_TTL_MS") or _first(base.get("messaging_ttl_ms"), defaults.messaging_ttl_ms),
        "REQUEST_BRIDGE_TTL_MS",
    )
    timeout_ms = _int(
        _env("REQUEST_BRIDGE_TIMEOUT_MS")
        or _first(base.get("messaging_timeout_ms"), defaults.messaging_timeout_ms),
        "REQUEST_BRIDGE_TIMEOUT_MS",
    )
    if ttl_ms <= 0:
        raise ConfigurationError("messaging_ttl_ms must be positive")
    if timeout_ms < 0:
        raise ConfigurationError("messaging_timeout_ms must not be negative")

    return BridgeConfig(
        messaging_ttl_ms=ttl_ms,
        messaging_timeout_ms=timeout_ms,
        publisher_backend=(
            _env("REQUEST_BRIDGE_PUBLISHER")
            or _first(base.get("publisher_backend"), defaults.publisher_backend)
        ).lower(),
        cache_backend=(
            _env("REQUEST_BRIDGE_CACHE") or _first(base.get("cache_backend"), defaults.cache_backend)
        ).lower(),
        log_level=(_env("LOG_LEVEL") or _first(base.get("log_level"), defaults.log_level)).upper(),
        kafka=kafka,
        mqtt=mqtt,
        redis=redis,
    )


__all__ = [
    "BridgeConfig",
    "CONFIG_FILE_ENV",
    "KafkaConfig",
    "MQTTConfig",
    "RedisConfig",
    "load_bridge_config",
]
