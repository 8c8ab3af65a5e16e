from __future__ import annotations

import numpy as np
import numpy.typing as npt
from PIL import Image

PixelSource = Image.Image | npt.NDArray[np.uint8]

_ALPHA_MODES = frozenset({"RGBA", "LA", "PA", "La", "RGBa"})


def _target_mode(img: Image.Image) -> str:
    if img.mode in _ALPHA_MODES:
        return "RGBA"
    if img.mode == "P" and "transparency" in img.info:
        return "RGBA"
    return "RGB"


def _from_image(img: Image.Image) -> npt.NDArray[np.uint8]:
    mode = _target_mode(img)
    if img.mode == mode:
        return np.asarray(img, dtype=np.uint8)
    converted = img.convert(mode)
    try:
        return np.asarray(converted, dtype=np.uint8)
    finally:
        converted.close()


def _from_array(arr: np.ndarray) -> npt.NDArray[np.uint8]:
    if arr.dtype != np.uint8:
        raise ValueError(f"pixel arrays must be uint8, got {arr.dtype}")
    if arr.ndim == 2:
        return np.repeat(arr[:, :, np.newaxis], 3, axis=2)
    if arr.ndim != 3 or arr.shape[2] not in (3, 4):
        raise ValueError(f"pixel arrays must have shape (H, W, 3) or (H, W, 4), got {arr.shape}")
    return arr


def as_pixels(source: PixelSource) -> npt.NDArray[np.uint8]:
    """Return a read-only ``(H, W, 3|4)`` uint8 view of ``source``."""
    if isinstance(source, Image.Image):
        pixels = _from_image(source)
    elif isinstance(source, np.ndarray):
        pixels = _from_array(source)
    else:
        raise TypeError(f"expected a PIL image or numpy array, got {type(source).__name__}")
    view = pixels.view()
    view.flags.writeable = False
    return view


def size_of(pixels: npt.NDArray[np.uint8]) -> tuple[int, int]:
    height, width = pixels.shape[:2]
    return width, height


def with_alpha(pixels: npt.NDArray[np.uint8]) -> npt.NDArray[np.uint8]:
    """Append an opaque alpha channel to RGB pixels."""
    if pixels.shape[2] == 4:
        return pixels
    alpha = np.full(pixels.shape[:2] + (1,), 255, dtype=np.uint8)
    return np.concatenate([pixels, alpha], axis=2)
