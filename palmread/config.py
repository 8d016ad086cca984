import os
from typing import List, Optional

from dotenv import load_dotenv

from .services.encoder import DegradationPlan, SizeBudget

load_dotenv()

_DISABLED = {"", "none", "off"}


def _byte_limit(name: str, default: Optional[int] = None) -> Optional[int]:
    """
    Unset -> default. Empty / "none" / "off" -> no limit. Anything else must be a positive int.
    """
    raw = os.getenv(name)
    if raw is None:
        return default
    raw = raw.strip()
    if raw.lower() in _DISABLED:
        return None
    value = int(raw)
    if value <= 0:
        raise ValueError(f"{name} must be a positive byte count, got {value}")
    return value


def _csv(name: str, default: str) -> List[str]:
    raw = os.getenv(name, default) or ""
    return [x.strip().lower() for x in raw.split(",") if x.strip()]


class Settings:
    # Size budget. The projected base64 size is the primary limit; a raw limit is optional.
    RAW_BYTE_LIMIT: Optional[int] = _byte_limit("RAW_BYTE_LIMIT")
    ENCODED_BYTE_LIMIT: Optional[int] = _byte_limit("ENCODED_BYTE_LIMIT", 4 * 1024 * 1024)

    # Degradation plan
    START_QUALITY: int = int(os.getenv("START_QUALITY", 80))
    QUALITY_STEP: int = int(os.getenv("QUALITY_STEP", 10))
    QUALITY_FLOOR: int = int(os.getenv("QUALITY_FLOOR", 30))
    START_DIMENSION_CAP: int = int(os.getenv("START_DIMENSION_CAP", 1600))
    DIMENSION_FLOOR: int = int(os.getenv("DIMENSION_FLOOR", 200))
    SHRINK_FACTOR: float = float(os.getenv("SHRINK_FACTOR", 0.8))
    MAX_ATTEMPTS: int = int(os.getenv("MAX_ATTEMPTS", 20))

    # Upload gate, checked before the encoder runs
    MAX_UPLOAD_BYTES: int = int(os.getenv("MAX_UPLOAD_BYTES", 10 * 1024 * 1024))
    ALLOWED_CONTENT_TYPES: List[str] = _csv("ALLOWED_CONTENT_TYPES", "image/jpeg,image/png,image/webp")

    MONGO_URL: str = os.getenv("MONGO_URL", "")
    MONGO_DB: str = os.getenv("MONGO_DB", "palmread")

    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

    # Pillow decompression-bomb ceiling, applied process-wide by main.py. Phone photos run 50MP+.
    MAX_IMAGE_PIXELS: int = int(os.getenv("MAX_IMAGE_PIXELS", 120_000_000))

    def budget(self, raw_byte_limit: Optional[int] = None,
               encoded_byte_limit: Optional[int] = None) -> SizeBudget:
        if raw_byte_limit is None and encoded_byte_limit is None:
            raw_byte_limit, encoded_byte_limit = self.RAW_BYTE_LIMIT, self.ENCODED_BYTE_LIMIT
        return SizeBudget(raw_byte_limit=raw_byte_limit, encoded_byte_limit=encoded_byte_limit)

    def plan(self) -> DegradationPlan:
        return DegradationPlan(
            start_quality=self.START_QUALITY,
            quality_step=self.QUALITY_STEP,
            quality_floor=self.QUALITY_FLOOR,
            start_dimension_cap=self.START_DIMENSION_CAP,
            dimension_floor=self.DIMENSION_FLOOR,
            shrink_factor=self.SHRINK_FACTOR,
            max_attempts=self.MAX_ATTEMPTS,
        )


settings = Settings()
