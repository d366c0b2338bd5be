#!/usr/bin/env python3
"""Verify the audit trail hash chain. Exits with 1 when it is broken."""

import asyncio
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from loguru import logger

from app.config.database import async_engine
from app.services.audit_service import AuditTrail

logger.remove()
logger.add(sys.stderr, level="INFO")


async def verify() -> bool:
    result = await AuditTrail().verify_chain()
    await async_engine.dispose()

    if result.is_valid:
        logger.success(f"Audit chain valid: {result.total_entries} entries")
    else:
        logger.error(
            f"Audit chain broken at entry {result.first_invalid_id}: {result.reason}"
        )
    return result.is_valid


if __name__ == "__main__":
    sys.exit(0 if asyncio.run(verify()) else 1)
