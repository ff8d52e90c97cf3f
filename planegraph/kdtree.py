"""3-D k-d tree with optional integer tags and closed-ball radius queries."""
from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Sequence

import numpy as np
from scipy.spatial import cKDTree

from utils.logger import Logger

from .errors import InvalidInput
from .points import PointSet, as_coords

LOG = Logger.get_logger("kdtree")


@dataclass(frozen=True, eq=False)
class Neighborhood:
    """Radius query result; ``points[j]`` carries tag ``tags[j]``."""

    points: np.ndarray  # (k, 3)
    tags: np.ndarray  # (k,) int64
    indices: np.ndarray  # (k,) positions inside the index

    @property
    def k(self) -> int:
        return int(self.points.shape[0])

    def __len__(self) -> int:
        return self.k


def _check_radius(radius: float) -> float:
    r = float(radius)
    if np.isnan(r) or r < 0.0:
        raise InvalidInput(f"radius must be >= 0, got {radius}")
    return r


def _readonly(a: np.ndarray) -> np.ndarray:
    a.setflags(write=False)
    return a


class SpatialIndex:
    """Frozen k-d tree over a coordinate copy, Euclidean distance."""

    def __init__(
        self,
        coords: np.ndarray,
        tags: Optional[np.ndarray],
        leaf_size: int,
    ) -> None:
        self._P = _readonly(coords)
        self._tagged = tags is not None
        if tags is None:
            tags = np.arange(coords.shape[0], dtype=np.int64)
        self._tags = _readonly(tags)
        self._tree = cKDTree(coords, leafsize=leaf_size) if len(coords) else None

    @classmethod
    def build(
        cls,
        points,
        tags: Optional[Sequence[int]] = None,
        leaf_size: int = 16,
    ) -> "SpatialIndex":
        """Build an index; without ``tags`` each entry is tagged by position."""
        P = points.coords.copy() if isinstance(points, PointSet) else as_coords(points)
        T = None
        if tags is not None:
            T = np.array(tags, copy=True)
            if T.ndim != 1 or T.shape[0] != P.shape[0]:
                raise InvalidInput(
                    f"need one tag per point: {P.shape[0]} points, "
                    f"tags shape {T.shape}"
                )
            if T.size and not np.issubdtype(T.dtype, np.integer):
                raise InvalidInput(f"tags must be integers, got {T.dtype}")
            T = T.astype(np.int64)
        if leaf_size < 1:
            raise InvalidInput(f"leaf_size must be >= 1, got {leaf_size}")
        LOG.debug(
            f"build kd-tree: {P.shape[0]} pts tagged={T is not None} leaf={leaf_size}"
        )
        return cls(P, T, int(leaf_size))

    @property
    def tagged(self) -> bool:
        return self._tagged

    @property
    def points(self) -> np.ndarray:
        return self._P

    @property
    def tags(self) -> np.ndarray:
        return self._tags

    def __len__(self) -> int:
        return int(self._P.shape[0])

    def _query_point(self, q) -> np.ndarray:
        q = np.asarray(q, dtype=np.float64)
        if q.shape != (3,):
            raise InvalidInput(f"query point must have shape (3,), got {q.shape}")
        if not np.all(np.isfinite(q)):
            raise InvalidInput("query point contains non-finite coordinates")
        return q

    def _result(self, idx) -> Neighborhood:
        idx = np.asarray(idx, dtype=np.int64)
        return Neighborhood(
            points=_readonly(self._P[idx]),
            tags=_readonly(self._tags[idx]),
            indices=_readonly(idx),
        )

    def query_radius(self, point, radius: float) -> Neighborhood:
        """All entries with ||p - point|| <= radius, ascending entry order."""
        r = _check_radius(radius)
        q = self._query_point(point)
        if self._tree is None:
            return self._result([])
        idx = self._tree.query_ball_point(q, r, p=2.0, return_sorted=True)
        return self._result(idx)

    def query_radius_many(
        self, points, radius: float, workers: int = 1
    ) -> List[Neighborhood]:
        """Batch form of :meth:`query_radius`, one result per query row."""
        r = _check_radius(radius)
        Q = as_coords(points, what="query points")
        if self._tree is None:
            return [self._result([]) for _ in range(Q.shape[0])]
        if Q.shape[0] == 0:
            return []
        lists = self._tree.query_ball_point(
            Q, r, p=2.0, workers=workers, return_sorted=True
        )
        return [self._result(idx) for idx in lists]
