"""Asynchronous request/response correlation bridge."""

from .bridge import RequestBridge
from .cache import CorrelationCache, MemoryCorrelationCache
from .config import BridgeConfig, KafkaConfig, MQTTConfig, RedisConfig, load_bridge_config
from .envelope import Envelope, OperationStatus
from .errors import (
    BridgeError,
    CacheUnavailableError,
    ConfigurationError,
    InfrastructureError,
    PublishError,
)
from .publisher import MemoryPublisher, QueuePublisher
from .status_mapper import error_response, http_status, to_response

__all__ = [
    "BridgeConfig",
    "BridgeError",
    "CacheUnavailableError",
    "ConfigurationError",
    "CorrelationCache",
    "Envelope",
    "InfrastructureError",
    "KafkaConfig",
    "MQTTConfig",
    "MemoryCorrelationCache",
    "MemoryPublisher",
    "OperationStatus",
    "PublishError",
    "QueuePublisher",
    "RedisConfig",
    "RequestBridge",
    "error_response",
    "http_status",
    "load_bridge_config",
    "to_response",
]
