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

import asyncio
import contextlib
import logging
import os
from contextlib import asynccontextmanager
from typing import Any, Optional

import uvicorn
from fastapi import Body, FastAPI, Header, Request
from fastapi.responses import JSONResponse

from request_bridge import Envelope, InfrastructureError, OperationStatus, load_bridge_config
from request_bridge.backends import build_bridge
from request_bridge.status_mapper import error_response, to_response
from request_bridge.worker import ResultWorker, iter_queue

config = load_bridge_config()
logging.basicConfig(level=config.log_level, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
logger = logging.getLogger("request_bridge.server")


async def echo_handler(envelope: Envelope):
    return OperationStatus.OK, {"kind": envelope.kind, "payload": envelope.payload}


@asynccontextmanager
async def lifespan(app: FastAPI):
    bridge = build_bridge(config)
    app.state.bridge = bridge
    worker_task = None
    if config.publisher_backend == "memory" and config.cache_backend == "memory":
        # Nothing else can see in-process queues, so answer them here.
        worker = ResultWorker(bridge.cache, echo_handler, ttl_ms=config.messaging_ttl_ms)
        worker_task = asyncio.create_task(worker.run(iter_queue(bridge.publisher.recv)))
    logger.info(
        "bridge ready (publisher=%s, cache=%s)", config.publisher_backend, config.cache_backend
    )
    try:
        yield
    finally:
        if worker_task is not None:
            worker_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await worker_task
        await bridge.publisher.close()
        await bridge.cache.close()


app = FastAPI(lifespan=lifespan)


@app.exception_handler(InfrastructureError)
async def infrastructure_error(request: Request, exc: InfrastructureError):
    logger.error("infrastructure fault on %s: %s", request.url.path, exc)
    code, body = error_response(exc)
    return JSONResponse(status_code=code, content=body)


@app.post("/v1/requests/{kind}")
async def submit_request(
    kind: str,
    request: Request,
    payload: Any = Body(default=None),
    wait: bool = True,
    timeout_ms: Optional[int] = None,
    x_correlation_id: Optional[str] = Header(default=None),
):
    bridge = request.app.state.bridge
    envelope = Envelope.new(kind, payload, correlation_id=x_correlation_id)
    if wait:
        result = await bridge.submit_and_wait(envelope, timeout_ms)
    else:
        result = await bridge.submit(envelope)
    code, body = to_response(result)
    if body is None:
        body = result.to_response()
    return JSONResponse(status_code=code, content=body)


def main():
    uvicorn.run(app, host=os.environ.get("HOST", "0.0.0.0"), port=int(os.environ.get("PORT", "8080")))


if __name__ == "__main__":
    main()
