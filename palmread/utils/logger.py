import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from motor.motor_asyncio import AsyncIOMotorClient

from ..config import settings

logger = logging.getLogger(__name__)

_mongo_client: Optional[AsyncIOMotorClient] = None


def configure_logging(level: Optional[str] = None) -> None:
    logging.basicConfig(
        level=level or settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def _get_db():
    # Lazy: no Mongo configured means console logging only
    global _mongo_client
    if not settings.MONGO_URL:
        return None
    if _mongo_client is None:
        _mongo_client = AsyncIOMotorClient(settings.MONGO_URL)
    return _mongo_client[settings.MONGO_DB]


# Log a finished compression request
async def log_compression(
    filename: Optional[str],
    content_type: Optional[str],
    input_size: int,
    result: Dict[str, Any],
):
    logger.info("resize %s (%s, %d bytes) -> %s", filename, content_type, input_size, result)
    db = _get_db()
    if db is None:
        return
    try:
        await db["compressions"].insert_one({
            "created_at": datetime.now(timezone.utc),
            "filename": filename,
            "content_type": content_type,
            "input_size": input_size,
            "result": result,
        })
    except Exception as e:
        logger.warning("log_compression failed: %s", e)


# Log failed stages
async def log_error(
    filename: Optional[str],
    error: str,
    stage: str,
    extra: Optional[Dict[str, Any]] = None,
):
    logger.warning("%s failed for %s: %s", stage, filename, error)
    db = _get_db()
    if db is None:
        return
    try:
        await db["logs"].insert_one({
            "created_at": datetime.now(timezone.utc),
            "filename": filename,
            "stage": stage,
            "error": error,
            "extra": extra or {},
        })
    except Exception as e:
        logger.warning("log_error failed: %s", e)
