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

"""Translate envelope statuses into outward HTTP-style result codes."""

from __future__ import annotations

import time
from typing import Any, Dict, Mapping, Tuple

from .envelope import Envelope, OperationStatus, StatusLike, status_name
from .errors import BridgeError

SUCCESS_CODE = 200
INTERNAL_ERROR_CODE = 500

STATUS_CODES: Mapping[str, int] = {
    OperationStatus.CREATED.value: SUCCESS_CODE,
    OperationStatus.OK.value: SUCCESS_CODE,
    OperationStatus.EXISTS.value: 209,
    OperationStatus.TIMEOUT.value: 408,
    OperationStatus.NOT_FOUND.value: 404,
    OperationStatus.ERROR.value: INTERNAL_ERROR_CODE,
    OperationStatus.INSUFFICIENT_BALANCE.value: 402,
    OperationStatus.FORBIDDEN.value: 403,
}

_GENERIC_ERROR_MESSAGE = "An unexpected error occurred while processing the request."


def http_status(status: StatusLike) -> int:
    """Return the outward code for ``status``; unknown statuses count as success."""

    return STATUS_CODES.get(status_name(status), SUCCESS_CODE)


def to_response(envelope: Envelope) -> Tuple[int, Any]:
    """Return ``(code, body)`` for an envelope produced by the bridge.

    Success carries the consumer's ``response_data`` as the body; every other
    outcome carries the envelope's outward projection so the caller can still
    see the correlation id and status.
    """

    code = http_status(envelope.status)
    if code == SUCCESS_CODE:
        return code, envelope.response_data
    return code, envelope.to_response()


def error_response(exc: BaseException) -> Tuple[int, Dict[str, Any]]:
    body: Dict[str, Any] = {
        "error": True,
        "timestamp": int(time.time() * 1000),
    }
    message = str(exc) if isinstance(exc, BridgeError) else ""
    body["message"] = message or _GENERIC_ERROR_MESSAGE
    return INTERNAL_ERROR_CODE, body


__all__ = [
    "INTERNAL_ERROR_CODE",
    "STATUS_CODES",
    "SUCCESS_CODE",
    "error_response",
    "http_status",
    "to_response",
]
