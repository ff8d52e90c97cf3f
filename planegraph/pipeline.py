"""Two-phase pipeline: per-point planes, then per-centroid plane graphs."""
from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence, TypeVar

import numpy as np

from utils.logger import Logger

from .config import PipelineCfg
from .errors import InsufficientNeighbors
from .graph import PlaneGraph, assemble_adjacency, build_graph
from .kdtree import Neighborhood, SpatialIndex
from .planes import fit_plane
from .points import PointSet
from .report import CentroidReport, NullObserver, PipelineObserver, PointReport

LOG = Logger.get_logger("pipeline")

T = TypeVar("T")


@dataclass(frozen=True, eq=False)
class PlaneSet:
    """Write-once per-point plane arrays; row i belongs to point i."""

    centroids: np.ndarray  # (N, 3), NaN where invalid
    normals: np.ndarray  # (N, 3), NaN where invalid
    counts: np.ndarray  # (N,) first-order neighbor counts
    valid: np.ndarray  # (N,) bool
    degenerate: np.ndarray  # (N,) bool
    skipped: Dict[int, str] = field(default_factory=dict)

    def __len__(self) -> int:
        return int(self.valid.shape[0])

    def valid_indices(self) -> np.ndarray:
        return np.flatnonzero(self.valid)


@dataclass(frozen=True, eq=False)
class PipelineResult:
    points: PointSet
    planes: PlaneSet
    graphs: List[Optional[PlaneGraph]]
    centroid_index: SpatialIndex

    def adjacency(self):
        return assemble_adjacency(self.graphs, len(self.points))

    def summary(self) -> Dict[str, int]:
        built = [g for g in self.graphs if g is not None]
        return dict(
            points=len(self.points),
            valid=int(self.planes.valid.sum()),
            skipped=len(self.planes.skipped),
            degenerate=int(self.planes.degenerate.sum()),
            graphs=len(built),
            edges=int(sum(g.n_edges for g in built)),
        )


def _map(fn: Callable[[int], T], items: Sequence[int], cfg: PipelineCfg, desc: str) -> List[T]:
    """Ordered map over ``items``; threads when cfg.workers != 1."""
    def bar(it):
        return Logger.progress(it, desc=desc, total=len(items), disable=not cfg.progress)

    if cfg.workers == 1 or len(items) < 2:
        return [fn(i) for i in bar(items)]
    n_jobs = None if cfg.workers == -1 else cfg.workers
    with ThreadPoolExecutor(max_workers=n_jobs) as ex:
        # results arrive in order as workers finish
        return list(bar(ex.map(fn, items)))


def build_point_index(points: PointSet, cfg: PipelineCfg) -> SpatialIndex:
    return SpatialIndex.build(points, leaf_size=cfg.leaf_size)


def estimate_planes(
    points: PointSet,
    cfg: PipelineCfg,
    index: Optional[SpatialIndex] = None,
    observer: Optional[PipelineObserver] = None,
) -> PlaneSet:
    """Phase 1: radius neighborhood and PCA plane for every point."""
    cfg.validate()
    obs = observer or NullObserver()
    index = index or build_point_index(points, cfg)
    n = len(points)
    P = points.coords

    hoods = index.query_radius_many(P, cfg.radius, workers=cfg.workers)
    centroids = np.full((n, 3), np.nan)
    normals = np.full((n, 3), np.nan)
    counts = np.zeros(n, dtype=np.int64)
    valid = np.zeros(n, dtype=bool)
    degenerate = np.zeros(n, dtype=bool)
    skipped: Dict[int, str] = {}

    def work(i: int):
        try:
            return fit_plane(
                hoods[i],
                min_neighbors=cfg.min_neighbors,
                degenerate_tol=cfg.degenerate_tol,
            )
        except InsufficientNeighbors as e:
            return e

    fits = _map(work, list(range(n)), cfg, desc="planes")

    # each slot is written once, after all workers are done
    for i, fit in enumerate(fits):
        counts[i] = hoods[i].k
        if isinstance(fit, InsufficientNeighbors):
            skipped[i] = str(fit)
            obs.on_skip(i, str(fit))
            obs.on_point(PointReport(i, P[i], cfg.radius, hoods[i].points, None, None))
            continue
        centroids[i] = fit.centroid
        normals[i] = fit.normal
        valid[i] = True
        degenerate[i] = fit.degenerate
        obs.on_point(
            PointReport(
                i, P[i], cfg.radius, hoods[i].points, fit.centroid, fit.normal, fit.degenerate
            )
        )

    for a in (centroids, normals, counts, valid, degenerate):
        a.setflags(write=False)
    LOG.info(
        f"planes: {int(valid.sum())}/{n} valid, {len(skipped)} skipped, "
        f"{int(degenerate.sum())} degenerate (r={cfg.radius})"
    )
    return PlaneSet(centroids, normals, counts, valid, degenerate, skipped)


def build_centroid_index(planes: PlaneSet, leaf_size: int = 16) -> SpatialIndex:
    """Tagged index over valid centroids; tag = originating point index."""
    idx = planes.valid_indices()
    return SpatialIndex.build(planes.centroids[idx], tags=idx, leaf_size=leaf_size)


def build_graphs(
    planes: PlaneSet,
    cfg: PipelineCfg,
    centroid_index: Optional[SpatialIndex] = None,
    observer: Optional[PipelineObserver] = None,
) -> List[Optional[PlaneGraph]]:
    """Phase 2: graph over the planes near each valid centroid (None if invalid)."""
    cfg.validate()
    obs = observer or NullObserver()
    cindex = centroid_index or build_centroid_index(planes, cfg.leaf_size)
    n = len(planes)
    todo = planes.valid_indices().tolist()
    if not todo:
        LOG.warning("graphs: no valid planes")
        return [None] * n

    hoods: List[Neighborhood] = cindex.query_radius_many(
        planes.centroids[todo], cfg.radius, workers=cfg.workers
    )

    def work(j: int) -> PlaneGraph:
        return build_graph(hoods[j], planes.normals)

    built = _map(work, list(range(len(todo))), cfg, desc="graphs")

    graphs: List[Optional[PlaneGraph]] = [None] * n
    for j, i in enumerate(todo):
        graphs[i] = built[j]
        obs.on_centroid(
            CentroidReport(
                i, planes.centroids[i], cfg.radius, hoods[j].points, hoods[j].tags, built[j]
            )
        )
    LOG.info(
        f"graphs: {len(todo)} built, "
        f"{sum(g.n_edges for g in built)} edges"
    )
    return graphs


def run(
    points: PointSet,
    cfg: Optional[PipelineCfg] = None,
    observer: Optional[PipelineObserver] = None,
) -> PipelineResult:
    cfg = (cfg or PipelineCfg()).validate()
    obs = observer or NullObserver()
    LOG.info(f"run: {len(points)} pts radius={cfg.radius} workers={cfg.workers}")

    index = build_point_index(points, cfg)
    planes = estimate_planes(points, cfg, index=index, observer=obs)
    obs.flush()

    cindex = build_centroid_index(planes, cfg.leaf_size)
    graphs = build_graphs(planes, cfg, centroid_index=cindex, observer=obs)
    obs.flush()

    result = PipelineResult(points, planes, graphs, cindex)
    LOG.info(f"summary: {result.summary()}")
    return result


def run_file(
    cfg: Optional[PipelineCfg] = None,
    observer: Optional[PipelineObserver] = None,
) -> PipelineResult:
    """Ingest ``cfg.cloud_path`` and run; IngestionFailure propagates."""
    from .io import load_cloud

    cfg = (cfg or PipelineCfg()).validate()
    points = load_cloud(cfg.cloud_path)
    return run(points, cfg, observer)
