#!/usr/bin/env python3
"""
Outbox Worker Runner

Runs the notification delivery loop as its own process against the durable
MongoDB outbox (DELIVERY_QUEUE_BACKEND=mongo), so queued emails keep being
retried while the API is restarted or scaled. API processes must then run
with RUN_EMBEDDED_WORKER=false, otherwise each of them drains the outbox too
and every due email is sent more than once.
"""

import asyncio
import os
import sys

# Ensure project root is on the path
ROOT_DIR = os.path.dirname(os.path.abspath(__file__))
sys.path.insert(0, ROOT_DIR)

from pymongo.asynchronous.mongo_client import AsyncMongoClient  # noqa: E402

from config import AppSettings  # noqa: E402
from services.context import build_services  # noqa: E402
from shared.logging import get_logger, setup_logging  # noqa: E402

log = get_logger("start_worker")


async def run_worker(settings: AppSettings) -> None:
    mongo_client = AsyncMongoClient(settings.db.mongodb_uri, tz_aware=True)
    services = build_services(settings, mongo_client[settings.db.db_name])
    try:
        if services.outbox is None:
            raise RuntimeError(
                "The standalone worker needs DELIVERY_QUEUE_BACKEND=mongo; "
                "the in-memory queue is drained by the API process itself."
            )
        await services.outbox.ensure_indexes()
        await services.delivery_queue.run()
    finally:
        await services.aclose()
        await mongo_client.close()


def main():
    """Main function to start the outbox worker"""
    settings = AppSettings()
    setup_logging(settings.logging)
    log.info("outbox_worker_starting", db_name=settings.db.db_name)

    try:
        asyncio.run(run_worker(settings))
    except KeyboardInterrupt:
        log.info("outbox_worker_stopped_by_user")
    except Exception as e:
        log.error("outbox_worker_failed", error=str(e), error_type=type(e).__name__)
        sys.exit(1)


if __name__ == "__main__":
    main()
