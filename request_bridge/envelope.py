"""Envelope and status taxonomy shared by the bridge and downstream consumers.

An :class:`Envelope` is the single unit that crosses the asynchronous
boundary: the bridge publishes it with status ``CREATED`` and the consumer
writes a copy back into the correlation cache carrying a terminal status and
its ``response_data``.  Both sides speak JSON, so the dataclass exposes
``to_payload`` / ``from_payload`` helpers that convert to and from plain
dictionaries.
"""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, Mapping, MutableMapping, Optional, Union


class OperationStatus(str, Enum):
    CREATED = "CREATED"
    OK = "OK"
    EXISTS = "EXISTS"
    TIMEOUT = "TIMEOUT"
    NOT_FOUND = "NOT_FOUND"
    ERROR = "ERROR"
    INSUFFICIENT_BALANCE = "INSUFFICIENT_BALANCE"
    FORBIDDEN = "FORBIDDEN"


# Consumers may write statuses this module does not know about; those are kept
# verbatim so the status mapper can fall back to its default.
StatusLike = Union[OperationStatus, str]

_KNOWN_ENVELOPE_KEYS = {
    "correlation_id",
    "kind",
    "payload",
    "status",
    "response_data",
    "timestamp",
}


def parse_status(value: Any) -> StatusLike:
    if isinstance(value, OperationStatus):
        return value
    if value is None:
        return OperationStatus.CREATED
    try:
        return OperationStatus(str(value))
    except ValueError:
        return str(value)


def status_name(status: StatusLike) -> str:
    if isinstance(status, OperationStatus):
        return status.value
    return str(status)


@dataclass(slots=True)
class Envelope:
    """One logical operation travelling through the queue and the cache."""

    correlation_id: str
    kind: Optional[str] = None
    payload: Any = None
    status: StatusLike = OperationStatus.CREATED
    response_data: Any = None
    timestamp: float = field(default_factory=lambda: time.time())
    extras: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def new(
        cls,
        kind: str,
        payload: Any,
        *,
        correlation_id: Optional[str] = None,
    ) -> "Envelope":
        return cls(
            correlation_id=correlation_id or str(uuid.uuid4()),
            kind=kind,
            payload=payload,
        )

    @classmethod
    def timed_out(cls, correlation_id: str) -> "Envelope":
        return cls(correlation_id=correlation_id, status=OperationStatus.TIMEOUT)

    def with_status(self, status: StatusLike, response_data: Any = None) -> "Envelope":
        """Return a copy carrying ``status``; the original is left untouched."""

        return replace(
            self,
            status=status,
            response_data=response_data,
            extras=dict(self.extras),
        )

    @property
    def is_terminal(self) -> bool:
        return status_name(self.status) != OperationStatus.CREATED.value

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "correlation_id": self.correlation_id,
            "kind": self.kind,
            "payload": self.payload,
            "status": status_name(self.status),
            "response_data": self.response_data,
            "timestamp": self.timestamp,
        }
        payload.update(self.extras)
        return payload

    def to_response(self) -> Dict[str, Any]:
        """Outward projection used when the status is not a plain success."""

        body: Dict[str, Any] = {
            "correlation_id": self.correlation_id,
            "status": status_name(self.status),
        }
        if self.response_data is not None:
            body["response_data"] = self.response_data
        return body

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "Envelope":
        if not isinstance(payload, Mapping):
            raise TypeError(f"Envelope payload must be a mapping, got {type(payload).__name__}")
        if "correlation_id" not in payload:
            raise ValueError("Envelope payload must include 'correlation_id'")

        extras = {
            key: value
            for key, value in payload.items()
            if key not in _KNOWN_ENVELOPE_KEYS
        }

        timestamp = payload.get("timestamp")
        try:
            timestamp = float(timestamp) if timestamp is not None else time.time()
        except (TypeError, ValueError):
            timestamp = time.time()

        return cls(
            correlation_id=str(payload["correlation_id"]),
            kind=payload.get("kind"),
            payload=payload.get("payload"),
            status=parse_status(payload.get("status")),
            response_data=payload.get("response_data"),
            timestamp=timestamp,
            extras=extras,
        )


def ensure_mapping(data: Envelope | Mapping[str, Any]) -> Dict[str, Any]:
    """Return a ``dict`` representation of any supported envelope variant."""

    if isinstance(data, Envelope):
        return data.to_payload()
    if isinstance(data, MutableMapping):
        return dict(data)
    if isinstance(data, Mapping):
        return {key: value for key, value in data.items()}
    raise TypeError(f"Unsupported payload type: {type(data)!r}")


def ensure_envelope(data: Envelope | Mapping[str, Any]) -> Envelope:
    if isinstance(data, Envelope):
        return data
    return Envelope.from_payload(ensure_mapping(data))


__all__ = [
    "Envelope",
    "OperationStatus",
    "StatusLike",
    "ensure_envelope",
    "ensure_mapping",
    "parse_status",
    "status_name",
]
