"""Maximum-achievable-brightness map over the chromaticity square."""
from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from speclut.colorimetry.tables import NDArrayF

__all__ = ["BrightnessMap"]


@dataclass(frozen=True, eq=False)
class BrightnessMap:
    """Row-major (height, width) luminance samples; row ↔ y, column ↔ x."""

    values: NDArrayF

    def __post_init__(self) -> None:
        if self.values.ndim != 2 or min(self.values.shape) < 1:
            raise ValueError(f"brightness map must be 2-D and non-empty, got {self.values.shape}")

    @classmethod
    def uniform(cls, value: float, width: int, height: int | None = None) -> "BrightnessMap":
        height = width if height is None else height
        return cls(np.full((height, width), float(value), dtype=np.float32))

    @property
    def width(self) -> int:
        return int(self.values.shape[1])

    @property
    def height(self) -> int:
        return int(self.values.shape[0])

    def nearest(self, columns: NDArrayF, row: int, resolution: int) -> NDArrayF:
        """
        Sample for grid cells ``(columns, row)`` of an R×R grid, R=``resolution``.
        Grid indices are scaled onto the map and truncated.
        """
        cols = np.asarray(columns, dtype=np.float64)
        ii = np.clip((cols * (self.width / resolution)).astype(np.int64), 0, self.width - 1)
        jj = int(min(self.height - 1, max(0, int(row * (self.height / resolution)))))
        return self.values[jj, ii].astype(np.float64)

    def bilinear(self, x: NDArrayF, y: NDArrayF) -> NDArrayF:
        """Bilinear lookup at normalised coordinates ``x, y`` ∈ [0, 1]."""
        if self.width < 2 or self.height < 2:
            raise ValueError("bilinear lookup needs a map of at least 2x2")
        fx = np.clip(np.asarray(x, dtype=np.float64) * self.width, 0.0, self.width - 2)
        fy = np.clip(np.asarray(y, dtype=np.float64) * self.height, 0.0, self.height - 2)
        x0 = fx.astype(np.int64)
        y0 = fy.astype(np.int64)
        u = fx - x0
        v = fy - y0
        m = self.values.astype(np.float64)
        return ((1.0 - u) * (1.0 - v) * m[y0, x0]
                + u * (1.0 - v) * m[y0, x0 + 1]
                + u * v * m[y0 + 1, x0 + 1]
                + (1.0 - u) * v * m[y0 + 1, x0])
