"""Immutable point set: row position is the point identity."""
from __future__ import annotations

from typing import Sequence, Tuple

import numpy as np

from .errors import InvalidInput


def as_coords(values, dims: int = 3, what: str = "points") -> np.ndarray:
    """Validate and copy ``values`` into a contiguous (N, dims) float64 array."""
    P = np.array(values, dtype=np.float64, copy=True)
    if P.ndim == 1 and P.size == 0:
        P = P.reshape(0, dims)
    if P.ndim != 2 or P.shape[1] != dims:
        raise InvalidInput(f"{what} must have shape (N, {dims}), got {P.shape}")
    if not np.all(np.isfinite(P)):
        raise InvalidInput(f"{what} contain non-finite coordinates")
    return np.ascontiguousarray(P)


class PointSet:
    """Ordered, read-only sequence of 3-D points."""

    __slots__ = ("_P",)

    def __init__(self, coords) -> None:
        P = as_coords(coords)
        P.setflags(write=False)
        self._P = P

    @classmethod
    def from_flat(cls, values: Sequence[float], dims: int = 3) -> "PointSet":
        """Build from a flat x0 y0 z0 x1 ... buffer (mesh vertex layout)."""
        flat = np.asarray(values, dtype=np.float64).ravel()
        if flat.size % dims:
            raise InvalidInput(
                f"flat buffer of {flat.size} values is not a multiple of {dims}"
            )
        return cls(flat.reshape(-1, dims))

    @property
    def coords(self) -> np.ndarray:
        return self._P

    def __len__(self) -> int:
        return int(self._P.shape[0])

    def __getitem__(self, i):
        return self._P[i]

    def __iter__(self):
        return iter(self._P)

    def bounds(self) -> Tuple[np.ndarray, np.ndarray]:
        if len(self) == 0:
            raise InvalidInput("empty point set has no bounds")
        return self._P.min(0), self._P.max(0)

    def __repr__(self) -> str:
        return f"PointSet(n={len(self)})"
