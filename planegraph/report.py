"""Reporting hooks called by the pipeline at per-point/per-centroid checkpoints."""
from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Protocol

import numpy as np

from utils.helpers import fmt_array
from utils.logger import Logger

from .graph import PlaneGraph

LOG = Logger.get_logger("report")


@dataclass(frozen=True, eq=False)
class PointReport:
    index: int
    query: np.ndarray
    radius: float
    neighbors: np.ndarray
    centroid: Optional[np.ndarray]
    normal: Optional[np.ndarray]
    degenerate: bool = False

    @property
    def count(self) -> int:
        return int(self.neighbors.shape[0])


@dataclass(frozen=True, eq=False)
class CentroidReport:
    index: int
    query: np.ndarray
    radius: float
    neighbors: np.ndarray
    tags: np.ndarray
    graph: PlaneGraph


class PipelineObserver(Protocol):
    def on_point(self, report: PointReport) -> None: ...

    def on_centroid(self, report: CentroidReport) -> None: ...

    def on_skip(self, index: int, reason: str) -> None: ...

    def flush(self) -> None: ...


class NullObserver:
    """Discards everything."""

    def on_point(self, report: PointReport) -> None:
        pass

    def on_centroid(self, report: CentroidReport) -> None:
        pass

    def on_skip(self, index: int, reason: str) -> None:
        pass

    def flush(self) -> None:
        pass


class CollectingObserver(NullObserver):
    """Keeps every report in memory (tests, notebooks)."""

    def __init__(self) -> None:
        self.points: List[PointReport] = []
        self.centroids: List[CentroidReport] = []
        self.skipped: List[tuple] = []
        self.flushes = 0

    def on_point(self, report: PointReport) -> None:
        self.points.append(report)

    def on_centroid(self, report: CentroidReport) -> None:
        self.centroids.append(report)

    def on_skip(self, index: int, reason: str) -> None:
        self.skipped.append((index, reason))

    def flush(self) -> None:
        self.flushes += 1


class LogObserver(CollectingObserver):
    """
    Buffers reports and writes them through the project logger on flush().
    ``verbose`` adds neighborhoods, tags and every edge weight.
    """

    def __init__(self, verbose: bool = False, precision: int = 6) -> None:
        super().__init__()
        self.verbose = verbose
        self.precision = precision

    def _fmt(self, v) -> str:
        return fmt_array(v, self.precision)

    def _emit_point(self, r: PointReport) -> None:
        if self.verbose:
            LOG.debug(
                f"[POINT {r.index}] query={self._fmt(r.query)} radius={r.radius} "
                f"neighbors={self._fmt(r.neighbors)}"
            )
        if r.centroid is None:
            return
        flag = " (degenerate)" if r.degenerate else ""
        LOG.info(
            f"[POINT {r.index}] k={r.count} centroid={self._fmt(r.centroid)} "
            f"normal={self._fmt(r.normal)}{flag}"
        )

    def _emit_centroid(self, r: CentroidReport) -> None:
        LOG.info(
            f"[CENTROID {r.index}] k={r.graph.k} edges={r.graph.n_edges} "
            f"tags={r.tags.tolist()}"
        )
        if not self.verbose:
            return
        LOG.debug(
            f"[CENTROID {r.index}] query={self._fmt(r.query)} radius={r.radius} "
            f"neighbors={self._fmt(r.neighbors)}"
        )
        for a, b, w in r.graph.edges():
            LOG.debug(f"w({a},{b}) = {w:.{self.precision}f}")

    def flush(self) -> None:
        for r in self.points:
            self._emit_point(r)
        for idx, reason in self.skipped:
            LOG.warning(f"[SKIP {idx}] {reason}")
        for r in self.centroids:
            self._emit_centroid(r)
        self.points.clear()
        self.centroids.clear()
        self.skipped.clear()
        super().flush()
