from __future__ import annotations

from collections.abc import Mapping
from typing import Annotated, Any, Literal

import numpy as np
import numpy.typing as npt
from PIL import Image
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .tolerance import MAX_MAGNITUDE, TABLE_SIZE


class Histogram(BaseModel):
    """Pixel counts indexed by difference magnitude.

    ``counts[0]`` is the number of pixels within tolerance; ``counts[k]`` the
    number of pixels whose worst channel exceeded its tolerance by ``k``.
    """

    model_config = ConfigDict(frozen=True)

    counts: tuple[int, ...]

    @field_validator("counts")
    @classmethod
    def validate_counts(cls, v: tuple[int, ...]) -> tuple[int, ...]:
        if len(v) != TABLE_SIZE:
            raise ValueError(f"histogram needs {TABLE_SIZE} bins, got {len(v)}")
        if any(count < 0 for count in v):
            raise ValueError("histogram counts must be non-negative")
        return v

    @classmethod
    def zero(cls) -> Histogram:
        return cls(counts=(0,) * TABLE_SIZE)

    @classmethod
    def from_magnitudes(cls, magnitudes: npt.NDArray[np.uint8]) -> Histogram:
        bins = np.bincount(magnitudes.ravel(), minlength=TABLE_SIZE)
        return cls(counts=tuple(int(count) for count in bins))

    def max_difference(self) -> int:
        """Highest magnitude with a non-zero count, or 0 for an empty histogram."""
        for magnitude in range(TABLE_SIZE - 1, -1, -1):
            if self.counts[magnitude]:
                return magnitude
        return 0

    def total(self) -> int:
        return sum(self.counts)

    def __str__(self) -> str:
        bins = ", ".join(
            f"Δ{magnitude} ×{count}"
            for magnitude, count in enumerate(self.counts)
            if magnitude > 0 and count > 0
        )
        return f"Histogram({bins})"


ThresholdLevel = tuple[
    Annotated[int, Field(ge=1, le=MAX_MAGNITUDE)],
    Annotated[int, Field(ge=0)] | None,
]


class Threshold(BaseModel):
    """Count-based allowance for differences recorded in a :class:`Histogram`.

    Each ``levels`` entry ``(level, count)`` permits up to ``count`` pixels with
    a magnitude above the previous level and at most ``level``. A count of
    ``None`` means unlimited. Magnitude 0 is always accepted and anything
    above the highest level is rejected. ``levels`` may be given as a mapping;
    it is stored as a tuple sorted by level.
    """

    model_config = ConfigDict(frozen=True)

    levels: tuple[ThresholdLevel, ...] = ()

    @field_validator("levels", mode="before")
    @classmethod
    def levels_from_mapping(cls, v: Any) -> Any:
        if isinstance(v, Mapping):
            return tuple(v.items())
        return v

    @field_validator("levels")
    @classmethod
    def sort_levels(cls, v: tuple[ThresholdLevel, ...]) -> tuple[ThresholdLevel, ...]:
        ordered = tuple(sorted(v, key=lambda entry: entry[0]))
        for (previous, _), (level, _) in zip(ordered, ordered[1:]):
            if previous == level:
                raise ValueError(f"threshold level {level} given more than once")
        return ordered

    @classmethod
    def no_bigger_than(cls, level: int) -> Threshold:
        """Allow any number of differences of magnitude ``level`` or less."""
        if level == 0:
            return cls()
        return cls(levels=((level, None),))

    def allows(self, histogram: Histogram) -> bool:
        checked_up_to = 1
        for level, count in self.levels:
            new_checked_up_to = level + 1
            in_band = sum(histogram.counts[checked_up_to:new_checked_up_to])
            if count is not None and in_band > count:
                return False
            checked_up_to = new_checked_up_to
        return sum(histogram.counts[checked_up_to:]) == 0


class Difference(BaseModel):
    """Outcome of one :func:`renderdiff.compare.compare_images` call.

    The fields are checked against each other on construction, so a
    ``Difference`` always describes a single consistent comparison.
    """

    model_config = ConfigDict(frozen=True)

    passed: bool
    magnitude: int = Field(ge=0, le=MAX_MAGNITUDE)
    histogram: Histogram
    changed_pixels: int = Field(ge=0)
    total_pixels: int = Field(ge=0)
    width: int = Field(ge=0)
    height: int = Field(ge=0)
    diff_mode: Literal["RGB", "RGBA"]
    diff_data: bytes = Field(repr=False)

    @model_validator(mode="after")
    def validate_consistency(self) -> Difference:
        if self.total_pixels != self.width * self.height:
            raise ValueError(
                f"total_pixels={self.total_pixels} does not match {self.width}x{self.height}"
            )
        if self.histogram.total() != self.total_pixels:
            raise ValueError(
                f"histogram counts {self.histogram.total()} pixels, expected {self.total_pixels}"
            )
        if self.changed_pixels != self.total_pixels - self.histogram.counts[0]:
            raise ValueError("changed_pixels disagrees with the histogram")
        if self.histogram.max_difference() != self.magnitude:
            raise ValueError(
                f"magnitude={self.magnitude} but histogram maximum is "
                f"{self.histogram.max_difference()}"
            )
        if self.passed != (self.magnitude == 0):
            raise ValueError(f"passed={self.passed} contradicts magnitude={self.magnitude}")
        expected_bytes = self.width * self.height * len(self.diff_mode)
        if len(self.diff_data) != expected_bytes:
            raise ValueError(
                f"diff_data holds {len(self.diff_data)} bytes, expected {expected_bytes}"
            )
        return self

    def passes(self, threshold: Threshold) -> bool:
        return threshold.allows(self.histogram)

    def diff_array(self) -> npt.NDArray[np.uint8]:
        channels = len(self.diff_mode)
        pixels = np.frombuffer(self.diff_data, dtype=np.uint8)
        return pixels.reshape(self.height, self.width, channels)

    def diff_image(self) -> Image.Image:
        return Image.frombytes(self.diff_mode, (self.width, self.height), self.diff_data)
