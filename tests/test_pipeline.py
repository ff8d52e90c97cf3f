import numpy as np
import pytest

from planegraph.config import PipelineCfg
from planegraph.errors import InvalidInput
from planegraph.pipeline import (
    _map,
    build_centroid_index,
    build_graphs,
    estimate_planes,
    run,
)
from planegraph.points import PointSet
from planegraph.report import CollectingObserver, LogObserver


def test_planar_cloud_normals(grid_plane):
    planes = estimate_planes(PointSet(grid_plane), PipelineCfg(radius=1.5))
    assert planes.valid.all()
    assert not planes.degenerate.any()
    np.testing.assert_allclose(np.abs(planes.normals[:, 2]), 1.0, atol=1e-12)
    # interior points see their 3x3 block
    assert planes.counts[60] == 9
    np.testing.assert_allclose(planes.centroids[60], grid_plane[60])


def test_isolated_points_are_skipped(grid_plane):
    P = np.vstack([grid_plane, [[100.0, 100.0, 100.0], [100.5, 100.0, 100.0]]])
    planes = estimate_planes(PointSet(P), PipelineCfg(radius=1.5))
    n = len(grid_plane)
    assert not planes.valid[n] and not planes.valid[n + 1]
    assert set(planes.skipped) == {n, n + 1}
    assert planes.counts[n] == 2
    assert np.isnan(planes.normals[n]).all()
    assert planes.valid[:n].all()


def test_collinear_neighborhood_is_flagged():
    P = np.array([[float(i), 0.0, 0.0] for i in range(6)])
    planes = estimate_planes(PointSet(P), PipelineCfg(radius=1.5))
    # endpoints have 2 neighbors, the rest 3 collinear ones
    assert set(planes.skipped) == {0, 5}
    assert planes.degenerate[1:5].all()


def test_centroid_index_tags_are_point_indices(grid_plane):
    P = np.vstack([grid_plane, [[50.0, 50.0, 50.0]]])
    planes = estimate_planes(PointSet(P), PipelineCfg(radius=1.5))
    cindex = build_centroid_index(planes)
    assert cindex.tagged
    assert len(cindex) == len(grid_plane)
    np.testing.assert_array_equal(cindex.tags, np.arange(len(grid_plane)))
    np.testing.assert_array_equal(cindex.points, planes.centroids[: len(grid_plane)])


def test_graphs_skip_invalid_planes(grid_plane):
    P = np.vstack([grid_plane, [[50.0, 50.0, 50.0]]])
    cfg = PipelineCfg(radius=1.5)
    planes = estimate_planes(PointSet(P), cfg)
    graphs = build_graphs(planes, cfg)
    assert graphs[-1] is None
    assert all(g is not None for g in graphs[:-1])
    for g in graphs[:-1]:
        assert len(P) - 1 not in g.tags.tolist()


def test_flat_surface_graph_weights_near_zero(grid_plane):
    result = run(PointSet(grid_plane), PipelineCfg(radius=1.5))
    g = result.graphs[60]
    assert 60 in g.tags.tolist()
    for _, _, w in g.edges():
        assert w == pytest.approx(0.0, abs=1e-9)


def test_two_orthogonal_patches(two_planes):
    result = run(PointSet(two_planes), PipelineCfg(radius=1.5))
    normals = result.planes.normals
    np.testing.assert_allclose(np.abs(normals[:36, 2]), 1.0, atol=1e-12)
    np.testing.assert_allclose(np.abs(normals[36:, 0]), 1.0, atol=1e-12)
    # patches are 20 units apart: graphs never mix them
    for i, g in enumerate(result.graphs):
        side = set(t < 36 for t in g.tags.tolist())
        assert side == {i < 36}
    A = result.adjacency()
    assert A.shape == (72, 72)
    assert A[:36, 36:].nnz == 0


def test_parallel_matches_serial(random_cloud):
    serial = run(PointSet(random_cloud), PipelineCfg(radius=1.5, workers=1))
    parallel = run(PointSet(random_cloud), PipelineCfg(radius=1.5, workers=4))
    np.testing.assert_array_equal(serial.planes.valid, parallel.planes.valid)
    np.testing.assert_allclose(
        serial.planes.centroids, parallel.planes.centroids, equal_nan=True
    )
    np.testing.assert_allclose(
        serial.planes.normals, parallel.planes.normals, equal_nan=True
    )
    for a, b in zip(serial.graphs, parallel.graphs):
        if a is None:
            assert b is None
            continue
        np.testing.assert_array_equal(a.tags, b.tags)
        assert list(a.edges()) == list(b.edges())


def test_observer_sees_every_checkpoint(grid_plane):
    P = np.vstack([grid_plane, [[50.0, 50.0, 50.0]]])
    obs = CollectingObserver()
    run(PointSet(P), PipelineCfg(radius=1.5), obs)
    assert len(obs.points) == len(P)
    assert [i for i, _ in obs.skipped] == [len(P) - 1]
    assert len(obs.centroids) == len(grid_plane)
    assert obs.flushes == 2
    rep = obs.points[60]
    assert rep.count == 9
    assert rep.neighbors.shape == (9, 3)


def test_log_observer_flushes_buffers(grid_plane):
    obs = LogObserver(verbose=True, precision=3)
    run(PointSet(grid_plane[:20]), PipelineCfg(radius=1.5), obs)
    assert obs.points == [] and obs.centroids == []
    assert obs.flushes == 2


def test_summary_counts(grid_plane):
    P = np.vstack([grid_plane, [[50.0, 50.0, 50.0]]])
    s = run(PointSet(P), PipelineCfg(radius=1.5)).summary()
    assert s["points"] == len(P)
    assert s["valid"] == len(grid_plane)
    assert s["skipped"] == 1
    assert s["graphs"] == len(grid_plane)
    assert s["edges"] > 0


def test_no_valid_planes():
    result = run(PointSet(np.zeros((2, 3))), PipelineCfg(radius=1.0))
    assert result.graphs == [None, None]
    assert len(result.centroid_index) == 0


def test_negative_radius_fails_fast(grid_plane):
    with pytest.raises(InvalidInput):
        run(PointSet(grid_plane), PipelineCfg(radius=-1.0))


def test_verbose_log_lists_neighbors_of_skipped_points(grid_plane):
    from loguru import logger

    P = np.vstack([grid_plane[:12], [[50.0, 50.0, 50.0]]])
    lines = []
    sink = logger.add(lambda m: lines.append(str(m)), level="DEBUG", format="{message}")
    try:
        run(PointSet(P), PipelineCfg(radius=1.5), LogObserver(verbose=True))
    finally:
        logger.remove(sink)
    isolated = [s for s in lines if s.startswith("[POINT 12]")]
    assert any("neighbors=" in s for s in isolated)
    assert not any("centroid=" in s for s in isolated)
    assert any(s.startswith("[SKIP 12]") for s in lines)


@pytest.mark.parametrize("workers", [1, 3])
def test_map_keeps_order_with_progress(workers):
    cfg = PipelineCfg(workers=workers, progress=True)
    assert _map(lambda i: i * i, list(range(20)), cfg, desc="sq") == [
        i * i for i in range(20)
    ]
