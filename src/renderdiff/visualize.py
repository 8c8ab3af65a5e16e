from __future__ import annotations

import numpy as np
import numpy.typing as npt

from .tolerance import MAX_MAGNITUDE

# Rec. 709 luma weights, in ten-thousandths.
LUMA_WEIGHTS = (2126, 7152, 722)
CONTEXT_DIVISOR = 3


def luma(pixels: npt.NDArray[np.uint8]) -> npt.NDArray[np.uint8]:
    rgb = pixels[:, :, :3].astype(np.uint32)
    weights = np.array(LUMA_WEIGHTS, dtype=np.uint32)
    return (rgb @ weights // 10000).astype(np.uint8)


def render_diff(
    expected: npt.NDArray[np.uint8],
    magnitudes: npt.NDArray[np.uint8],
    max_magnitude: int,
    with_alpha: bool,
) -> npt.NDArray[np.uint8]:
    """Draw per-pixel magnitudes over a dimmed copy of the reference image.

    Matching pixels show the reference luma, scaled down, in the red channel
    only. Differing pixels add green and blue proportional to their magnitude,
    stretched so that ``max_magnitude`` is full brightness. Every differing
    pixel gets at least 1, so nothing above tolerance renders as matching.
    """
    height, width = magnitudes.shape
    channels = 4 if with_alpha else 3
    out = np.zeros((height, width, channels), dtype=np.uint8)
    out[:, :, 0] = luma(expected) // CONTEXT_DIVISOR

    if max_magnitude > 0:
        widened = magnitudes.astype(np.uint32)
        amplified = (widened * MAX_MAGNITUDE + max_magnitude - 1) // max_magnitude
        out[:, :, 1] = amplified
        out[:, :, 2] = amplified

    if with_alpha:
        out[:, :, 3] = 255
    return out
