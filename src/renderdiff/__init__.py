"""Tolerance-based comparison of rendered images for renderer test suites."""

from .compare import compare_images, compare_images_batch
from .errors import DimensionMismatch, InvalidMagnitude, RenderDiffError
from .tolerance import ToleranceModel
from .types import Difference, Histogram, Threshold

__all__ = [
    "Difference",
    "DimensionMismatch",
    "Histogram",
    "InvalidMagnitude",
    "RenderDiffError",
    "Threshold",
    "ToleranceModel",
    "compare_images",
    "compare_images_batch",
]
