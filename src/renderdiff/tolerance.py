from __future__ import annotations

import math
import operator

import numpy as np
import numpy.typing as npt

from .errors import InvalidMagnitude

TABLE_SIZE = 256
MAX_MAGNITUDE = 255


def _default_curve() -> npt.NDArray[np.uint8]:
    # 1 at black and white, 3 in the mid-tones.
    levels = np.arange(TABLE_SIZE, dtype=np.float64)
    curve = 1 + np.rint(2 * np.sin(np.pi * levels / (TABLE_SIZE - 1)))
    table = curve.astype(np.uint8)
    table.flags.writeable = False
    return table


DEFAULT_CURVE = _default_curve()


def _check_magnitude(value: object) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, np.integer)):
        raise InvalidMagnitude(value)
    if not 0 <= value <= MAX_MAGNITUDE:
        raise InvalidMagnitude(value)
    return int(value)


def _check_intensity(intensity: object) -> int:
    if isinstance(intensity, bool):
        raise TypeError(f"intensity must be an integer, got {intensity!r}")
    index = operator.index(intensity)  # type: ignore[arg-type]
    if not 0 <= index < TABLE_SIZE:
        raise IndexError(f"intensity must be in [0, {TABLE_SIZE - 1}], got {index}")
    return index


class ToleranceModel:
    """Allowed absolute deviation for each 8-bit channel intensity.

    The table is indexed by the reference image's component value. It can be
    configured and applied but not read back entry by entry, so callers
    depend on comparison behaviour rather than on the table layout.
    """

    __slots__ = ("_table",)

    def __init__(self) -> None:
        self._table: npt.NDArray[np.uint8] = DEFAULT_CURVE.copy()

    @classmethod
    def exact(cls) -> ToleranceModel:
        """Tolerate no deviation at all."""
        return cls.uniform(0)

    @classmethod
    def uniform(cls, deviation: int) -> ToleranceModel:
        model = cls()
        model.set_range(0, TABLE_SIZE - 1, deviation)
        return model

    def __repr__(self) -> str:
        return f"<{type(self).__name__}>"

    def load_default(self) -> None:
        self._table = DEFAULT_CURVE.copy()

    def set(self, intensity: int, deviation: int) -> None:
        index = _check_intensity(intensity)
        self._table[index] = _check_magnitude(deviation)

    def set_range(self, start: int, stop: int, deviation: int) -> None:
        """Set every intensity from ``start`` to ``stop`` inclusive."""
        first = _check_intensity(start)
        last = _check_intensity(stop)
        if first > last:
            raise IndexError(f"empty intensity range [{first}, {last}]")
        self._table[first : last + 1] = _check_magnitude(deviation)

    def scale(self, factor: float) -> None:
        """Multiply every entry by ``factor``, rounding to the nearest integer.

        Nothing changes if any scaled entry would fall outside [0, 255].
        """
        if isinstance(factor, bool) or not isinstance(factor, (int, float, np.number)):
            raise InvalidMagnitude(factor)
        try:
            multiplier = float(factor)
        except OverflowError:
            raise InvalidMagnitude(factor) from None
        if not math.isfinite(multiplier) or multiplier < 0:
            raise InvalidMagnitude(factor)
        with np.errstate(over="ignore"):
            scaled = np.rint(self._table.astype(np.float64) * multiplier)
        if not np.isfinite(scaled).all() or scaled.max() > MAX_MAGNITUDE:
            raise InvalidMagnitude(factor)
        self._table = scaled.astype(np.uint8)

    def apply(self, reference: npt.ArrayLike) -> npt.NDArray[np.uint8]:
        """Allowed deviations for an array of reference intensities."""
        intensities = np.asarray(reference)
        if intensities.dtype != np.uint8:
            raise ValueError(f"reference intensities must be uint8, got {intensities.dtype}")
        return self._table[intensities]
