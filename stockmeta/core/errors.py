"""
Exceptions raised along the analysis pipeline.

Every per-file error ends up as the `error` string of an AnalysisResult;
only RateLimitError is retried.
"""
from typing import Optional


class StockMetaError(Exception):
    """Base class for pipeline errors."""


class UnsupportedFileError(StockMetaError):
    """The file is neither an image, an SVG, an EPS nor a video."""


class ConversionError(StockMetaError):
    """SVG rasterization or encoding failed."""


class ExtractionError(StockMetaError):
    """EPS text could not be read or parsed."""


class ThumbnailError(StockMetaError):
    """No frame, not even a placeholder, could be produced for a video."""


class ModelRequestError(StockMetaError):
    """Non-retryable failure of the model API call."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class RateLimitError(ModelRequestError):
    """HTTP 429/503 or a transport error that looks like throttling."""


class ParseError(StockMetaError):
    """No JSON object could be located or decoded in the model output."""


class ReconciliationError(StockMetaError):
    """A dispatched file has no matching result in its batch."""
