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
import json
import logging

from kafka import KafkaConsumer

from request_bridge import Envelope, OperationStatus, load_bridge_config
from request_bridge.cache_redis import RedisCorrelationCache
from request_bridge.worker import ResultWorker

logger = logging.getLogger("request_bridge.echo_worker")


async def echo_handler(envelope: Envelope):
    return OperationStatus.OK, {"kind": envelope.kind, "payload": envelope.payload}


async def handle_batches(worker: ResultWorker, batches) -> int:
    handled = 0
    for records in batches.values():
        for record in records:
            try:
                envelope = Envelope.from_payload(record.value)
            except (TypeError, ValueError) as exc:
                logger.warning("skipping malformed record at offset %s: %s", record.offset, exc)
                continue
            await worker.handle(envelope)
            handled += 1
    return handled


async def run_kafka(config):
    consumer = KafkaConsumer(
        config.kafka.topic,
        bootstrap_servers=config.kafka.bootstrap_servers,
        value_deserializer=lambda m: json.loads(m.decode("utf-8")),
        auto_offset_reset="earliest",
        enable_auto_commit=True,
        group_id="request_bridge_echo",
    )
    cache = RedisCorrelationCache.from_url(config.redis.url, prefix=config.redis.prefix)
    worker = ResultWorker(cache, echo_handler, ttl_ms=config.messaging_ttl_ms)
    logger.info("echo worker listening on %s", config.kafka.topic)
    try:
        while True:
            batches = await asyncio.to_thread(consumer.poll, 1000)
            await handle_batches(worker, batches)
    finally:
        consumer.close()
        await cache.close()


def main():
    config = load_bridge_config()
    logging.basicConfig(level=config.log_level, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    asyncio.run(run_kafka(config))


if __name__ == "__main__":
    main()
