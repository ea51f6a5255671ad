"""Create or update the daily mirror sync schedule on Temporal."""

import asyncio
import sys
from pathlib import Path

# Add repo root to path
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from core.config import load_settings
from core.observability import configure_logging, get_logger
from temporal_client import get_temporal_client
from workflows.schedules import ensure_sync_schedule


logger = get_logger(__name__)


async def main() -> dict:
    settings = load_settings()
    configure_logging(level=settings.sync.log_level, json_format=settings.sync.log_json)

    client = await get_temporal_client(settings.temporal)
    logger.info(f"Connected to Temporal: {client.namespace}")

    outcome = await ensure_sync_schedule(client, settings)
    logger.info(f"Schedule {outcome['schedule_id']} {outcome['status']} (cron: {outcome['cron']})")
    return outcome


if __name__ == "__main__":
    asyncio.run(main())
