from __future__ import annotations

import logging
from collections.abc import Sequence

import numpy as np
import numpy.typing as npt

from .errors import DimensionMismatch, RenderDiffError
from .pixels import PixelSource, as_pixels, size_of, with_alpha
from .tolerance import ToleranceModel
from .types import Difference, Histogram
from .visualize import render_diff

logger = logging.getLogger(__name__)


def _align_channels(
    expected: npt.NDArray[np.uint8],
    actual: npt.NDArray[np.uint8],
) -> tuple[npt.NDArray[np.uint8], npt.NDArray[np.uint8], bool]:
    has_alpha = expected.shape[2] == 4 or actual.shape[2] == 4
    if has_alpha:
        return with_alpha(expected), with_alpha(actual), True
    return expected, actual, False


def pixel_magnitudes(
    expected: npt.NDArray[np.uint8],
    actual: npt.NDArray[np.uint8],
    tolerance: ToleranceModel,
) -> npt.NDArray[np.uint8]:
    """Per-pixel excess over tolerance, worst channel wins.

    Tolerance is looked up at the ``expected`` component value. A channel whose
    difference equals its allowed deviation contributes nothing.
    """
    delta = np.abs(expected.astype(np.int16) - actual.astype(np.int16))
    allowed = tolerance.apply(expected).astype(np.int16)
    excess = np.clip(delta - allowed, 0, None)
    if excess.size == 0:
        return np.zeros(expected.shape[:2], dtype=np.uint8)
    return excess.max(axis=2).astype(np.uint8)


def compare_images(
    expected: PixelSource,
    actual: PixelSource,
    tolerance: ToleranceModel | None = None,
) -> Difference:
    expected_px = as_pixels(expected)
    actual_px = as_pixels(actual)

    expected_size = size_of(expected_px)
    actual_size = size_of(actual_px)
    if expected_size != actual_size:
        raise DimensionMismatch(expected_size, actual_size)

    if tolerance is None:
        tolerance = ToleranceModel()

    expected_px, actual_px, has_alpha = _align_channels(expected_px, actual_px)
    magnitudes = pixel_magnitudes(expected_px, actual_px, tolerance)

    magnitude = int(magnitudes.max()) if magnitudes.size else 0
    histogram = Histogram.from_magnitudes(magnitudes)
    total_pixels = int(magnitudes.size)
    changed_pixels = total_pixels - histogram.counts[0]

    diff_pixels = render_diff(expected_px, magnitudes, magnitude, has_alpha)
    width, height = expected_size

    logger.debug(
        "compared %dx%d images: changed_px=%d magnitude=%d",
        width,
        height,
        changed_pixels,
        magnitude,
    )

    return Difference(
        passed=changed_pixels == 0,
        magnitude=magnitude,
        histogram=histogram,
        changed_pixels=changed_pixels,
        total_pixels=total_pixels,
        width=width,
        height=height,
        diff_mode="RGBA" if has_alpha else "RGB",
        diff_data=diff_pixels.tobytes(),
    )


def compare_images_batch(
    pairs: Sequence[tuple[PixelSource, PixelSource]],
    tolerance: ToleranceModel | None = None,
) -> list[Difference | None]:
    if tolerance is None:
        tolerance = ToleranceModel()
    logger.info("comparing batch of %d image pairs", len(pairs))
    return [
        _compare_single_pair(idx, expected, actual, tolerance)
        for idx, (expected, actual) in enumerate(pairs)
    ]


def _compare_single_pair(
    idx: int,
    expected: PixelSource,
    actual: PixelSource,
    tolerance: ToleranceModel,
) -> Difference | None:
    try:
        return compare_images(expected, actual, tolerance)
    except RenderDiffError:
        logger.exception("Failed to compare image pair %d", idx)
        return None
