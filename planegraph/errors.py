"""Error taxonomy for plane estimation and graph building."""
from __future__ import annotations

from typing import Sequence


class PlaneGraphError(Exception):
    """Base class for all planegraph errors."""


class IngestionFailure(PlaneGraphError):
    """Raised when a point source cannot be read; aborts the run."""

    def __init__(self, source: str, reason: str) -> None:
        super().__init__(f"cannot load {source}: {reason}")
        self.source = source
        self.reason = reason


class InvalidInput(PlaneGraphError, ValueError):
    """Malformed arguments to an index build or query."""


class InsufficientNeighbors(PlaneGraphError):
    """Neighborhood too small to fit a plane."""

    def __init__(self, count: int, required: int) -> None:
        super().__init__(f"need at least {required} neighbors, got {count}")
        self.count = int(count)
        self.required = int(required)


class DegenerateGeometry(PlaneGraphError):
    """Minor axis of the covariance is not unique; normal is arbitrary."""

    def __init__(self, eigenvalues: Sequence[float]) -> None:
        vals = ", ".join(f"{float(v):.3g}" for v in eigenvalues)
        super().__init__(f"non-unique minor axis, eigenvalues [{vals}]")
        self.eigenvalues = tuple(float(v) for v in eigenvalues)
