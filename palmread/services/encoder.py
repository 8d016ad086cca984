"""
Adaptive size-budget JPEG encoder.

Searches two knobs, JPEG quality and the long edge of the output, until the
encoded file fits the budget:

  1. quality drops by `quality_step` until it reaches `quality_floor`
  2. only then the long edge shrinks by `shrink_factor` until `dimension_floor`

The two knobs never move in the same step, so attempts are monotonic in
(quality, dimensions). Quality uses Pillow's integer 1-100 JPEG scale.
`max_attempts` counts encodes, including the first one.
"""
import logging
import threading
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from pydantic import BaseModel, Field, model_validator

from ..errors import BudgetUnreachable, CompressionAborted, EncodeError
from ..utils.images import (
    decode_image,
    encode_jpeg,
    fit_within,
    format_file_size,
    projected_base64_size,
    resample,
    to_base64,
)

logger = logging.getLogger(__name__)

MIB = 1024 * 1024


class SizeBudget(BaseModel):
    raw_byte_limit: Optional[int] = Field(None, gt=0, description="Max size of the JPEG file itself")
    encoded_byte_limit: Optional[int] = Field(None, gt=0, description="Max size once base64 encoded")

    @model_validator(mode="after")
    def _needs_a_limit(self):
        if self.raw_byte_limit is None and self.encoded_byte_limit is None:
            raise ValueError("SizeBudget needs raw_byte_limit or encoded_byte_limit")
        return self

    def allows(self, size: int) -> bool:
        if self.raw_byte_limit is not None and size > self.raw_byte_limit:
            return False
        if self.encoded_byte_limit is not None and projected_base64_size(size) > self.encoded_byte_limit:
            return False
        return True

    def describe(self) -> str:
        parts = []
        if self.raw_byte_limit is not None:
            parts.append(f"raw <= {format_file_size(self.raw_byte_limit)}")
        if self.encoded_byte_limit is not None:
            parts.append(f"base64 <= {format_file_size(self.encoded_byte_limit)}")
        return ", ".join(parts)


class DegradationPlan(BaseModel):
    start_quality: int = Field(80, ge=1, le=100)
    quality_step: int = Field(10, ge=1)
    quality_floor: int = Field(30, ge=1, le=100)
    start_dimension_cap: int = Field(1600, ge=1, description="Clamp for the long edge, never a target")
    dimension_floor: int = Field(200, ge=1, description="Smallest long edge reached by shrinking")
    shrink_factor: float = Field(0.8, gt=0, lt=1)
    max_attempts: int = Field(20, ge=1)

    @model_validator(mode="after")
    def _check_order(self):
        if self.quality_floor > self.start_quality:
            raise ValueError("quality_floor must not exceed start_quality")
        if self.dimension_floor > self.start_dimension_cap:
            raise ValueError("dimension_floor must not exceed start_dimension_cap")
        return self


class AttemptRecord(BaseModel):
    attempt: int
    width: int
    height: int
    quality: int
    size: int
    encoded_size: int
    within_budget: bool


@dataclass(frozen=True)
class EncodeAttempt:
    width: int
    height: int
    quality: int
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)

    @property
    def encoded_size(self) -> int:
        return projected_base64_size(len(self.data))


@dataclass
class CompressionResult:
    data: bytes
    width: int
    height: int
    quality: int
    attempts: int
    within_budget: bool
    source_format: str
    history: List[AttemptRecord] = field(default_factory=list)

    @property
    def size(self) -> int:
        return len(self.data)

    @property
    def encoded_size(self) -> int:
        return projected_base64_size(len(self.data))

    def to_base64(self) -> str:
        return to_base64(self.data)


class SizeBudgetEncoder:
    def __init__(self, budget: SizeBudget, plan: Optional[DegradationPlan] = None):
        self.budget = budget
        self.plan = plan or DegradationPlan()

    def compress(self, raw: bytes, cancel: Optional[threading.Event] = None) -> bytes:
        return self.compress_detailed(raw, cancel=cancel).data

    def compress_detailed(
        self,
        raw: bytes,
        cancel: Optional[threading.Event] = None,
        best_effort: bool = False,
    ) -> CompressionResult:
        """
        Run the resize/encode/measure loop on `raw`.

        Raises DecodeError for bad input (not retried), EncodeError on backend
        faults, CompressionAborted when `cancel` is set between attempts and
        BudgetUnreachable when the search runs out. With best_effort=True the
        last (smallest) attempt is returned with within_budget=False instead.
        """
        src = decode_image(raw)
        plan = self.plan
        quality = plan.start_quality
        long_edge = min(max(src.width, src.height), plan.start_dimension_cap)

        history: List[AttemptRecord] = []
        attempt: Optional[EncodeAttempt] = None

        for n in range(1, plan.max_attempts + 1):
            if cancel is not None and cancel.is_set():
                raise CompressionAborted(f"Compression abandoned before attempt {n}")

            width, height = fit_within(src.width, src.height, long_edge)
            data = encode_jpeg(resample(src, (width, height)), quality)
            if not data:
                raise EncodeError(f"JPEG encoder returned no output at quality {quality}")

            attempt = EncodeAttempt(width=width, height=height, quality=quality, data=data)
            ok = self.budget.allows(attempt.size)
            history.append(AttemptRecord(
                attempt=n,
                width=width,
                height=height,
                quality=quality,
                size=attempt.size,
                encoded_size=attempt.encoded_size,
                within_budget=ok,
            ))
            logger.debug("attempt %d: %dx%d q=%d -> %d bytes (base64 %d)",
                         n, width, height, quality, attempt.size, attempt.encoded_size)

            if ok:
                logger.info("compressed %s %dx%d to %dx%d q=%d, %s in %d attempt(s)",
                            src.format, src.width, src.height, width, height, quality,
                            format_file_size(attempt.size), n)
                return self._result(attempt, src.format, history, within_budget=True)

            step = self._next_step(quality, long_edge)
            if step is None:
                logger.debug("quality and dimension floors reached after %d attempt(s)", n)
                break
            quality, long_edge = step

        msg = (f"Image cannot be reduced enough: {attempt.width}x{attempt.height} at quality "
               f"{attempt.quality} is still {format_file_size(attempt.size)} ({self.budget.describe()})")
        if best_effort:
            logger.warning("%s; returning best effort", msg)
            return self._result(attempt, src.format, history, within_budget=False)
        logger.warning(msg)
        raise BudgetUnreachable(msg, last_attempt=attempt, history=history)

    def _next_step(self, quality: int, long_edge: int) -> Optional[Tuple[int, int]]:
        plan = self.plan
        if quality > plan.quality_floor:
            return max(plan.quality_floor, quality - plan.quality_step), long_edge
        if long_edge > plan.dimension_floor:
            return quality, max(plan.dimension_floor, int(long_edge * plan.shrink_factor))
        return None

    @staticmethod
    def _result(attempt: EncodeAttempt, source_format: str, history: List[AttemptRecord],
                within_budget: bool) -> CompressionResult:
        return CompressionResult(
            data=attempt.data,
            width=attempt.width,
            height=attempt.height,
            quality=attempt.quality,
            attempts=len(history),
            within_budget=within_budget,
            source_format=source_format,
            history=history,
        )


def compress(raw: bytes, budget: SizeBudget, plan: Optional[DegradationPlan] = None) -> bytes:
    return SizeBudgetEncoder(budget, plan).compress(raw)
