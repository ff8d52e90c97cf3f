from pathlib import Path

import numpy as np
import pytest

from planegraph.config import PipelineCfg
from planegraph.errors import InvalidInput
from planegraph.points import PointSet


def test_defaults():
    cfg = PipelineCfg().validate()
    assert cfg.radius == 4.0
    assert cfg.cloud_path == Path("PointClouds") / "xy_nearly.obj"


@pytest.mark.parametrize(
    "changes",
    [
        dict(radius=-0.5),
        dict(radius=float("nan")),
        dict(dims=2),
        dict(norm=1),
        dict(min_neighbors=2),
        dict(workers=0),
        dict(leaf_size=0),
    ],
)
def test_invalid_config(changes):
    with pytest.raises(InvalidInput):
        PipelineCfg().with_(**changes).validate()


def test_point_set_from_flat():
    ps = PointSet.from_flat([0, 1, 2, 3, 4, 5])
    assert len(ps) == 2
    np.testing.assert_array_equal(ps[1], [3.0, 4.0, 5.0])
    lo, hi = ps.bounds()
    np.testing.assert_array_equal(lo, [0.0, 1.0, 2.0])
    np.testing.assert_array_equal(hi, [3.0, 4.0, 5.0])


def test_point_set_from_flat_bad_length():
    with pytest.raises(InvalidInput):
        PointSet.from_flat([0.0, 1.0, 2.0, 3.0])


def test_point_set_is_immutable():
    src = np.zeros((3, 3))
    ps = PointSet(src)
    src[0, 0] = 1.0
    assert ps[0][0] == 0.0
    with pytest.raises(ValueError):
        ps.coords[0, 0] = 2.0
