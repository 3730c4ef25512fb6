#!/usr/bin/env python3
"""
Delete expired, never-consumed claims past the grace window.

Meant for cron; consumed claims are kept forever as replay evidence.
"""

from __future__ import annotations

import asyncio
import logging

from claimledger.core.container import build_container
from claimledger.infrastructure.database.session import init_db

logger = logging.getLogger("cleanup_claims")


async def cleanup() -> int:
    container = build_container()
    try:
        await init_db(container.engine)
        removed = await container.claim_service.cleanup_expired()
        stats = await container.claim_service.stats()
        logger.info(
            "Removed %d claims; %d live, %d consumed, %d failed",
            removed,
            stats.live_unused,
            stats.consumed,
            stats.failed,
        )
        return removed
    finally:
        await container.dispose()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    asyncio.run(cleanup())
