from __future__ import annotations


class RenderDiffError(Exception):
    pass


class DimensionMismatch(RenderDiffError, ValueError):
    def __init__(self, expected_size: tuple[int, int], actual_size: tuple[int, int]) -> None:
        self.expected_size = expected_size
        self.actual_size = actual_size
        super().__init__(
            f"image sizes differ: expected {expected_size[0]}x{expected_size[1]}, "
            f"actual {actual_size[0]}x{actual_size[1]}"
        )


class InvalidMagnitude(RenderDiffError, ValueError):
    def __init__(self, value: object) -> None:
        self.value = value
        super().__init__(f"tolerance must be an integer in [0, 255], got {value!r}")
