from typing import List, Optional


class ImageProcessingError(Exception):
    """Base class for everything the size-budget pipeline raises."""


class DecodeError(ImageProcessingError):
    """Input is not a decodable JPEG/PNG/WebP raster image."""


class EncodeError(ImageProcessingError):
    """Resample/encode backend fault. Fatal for the request, never retried."""


class CompressionAborted(ImageProcessingError):
    """Caller abandoned the request; raised at a loop boundary."""


class BudgetUnreachable(ImageProcessingError):
    """Floors or max_attempts reached while still over budget; carries the last attempt."""

    def __init__(self, message: str, last_attempt=None, history: Optional[List] = None):
        super().__init__(message)
        self.last_attempt = last_attempt
        self.history = history or []
