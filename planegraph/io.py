"""Point cloud ingestion (mesh vertices or point formats) via Open3D."""
from __future__ import annotations

from pathlib import Path

import numpy as np
import open3d as o3d

from utils import config as ucfg
from utils.helpers import capture_native_stderr_to_logger
from utils.logger import Logger

from .errors import IngestionFailure, InvalidInput
from .points import PointSet

LOG = Logger.get_logger("io")


def _read_vertices(path: Path) -> np.ndarray:
    # faces, normals and materials are loaded by the reader but unused here
    mesh = o3d.io.read_triangle_mesh(str(path))
    return np.asarray(mesh.vertices, dtype=np.float64)


def _read_points(path: Path) -> np.ndarray:
    pc = o3d.io.read_point_cloud(str(path))
    return np.asarray(pc.points, dtype=np.float64)


def load_cloud(path) -> PointSet:
    """Load the ordered point coordinates of ``path``; raises IngestionFailure."""
    p = Path(path)
    if not p.is_file():
        raise IngestionFailure(str(p), "file not found")
    suffix = p.suffix.lower()
    if suffix in ucfg.MESH_SUFFIXES:
        reader = _read_vertices
    elif suffix in ucfg.CLOUD_SUFFIXES:
        reader = _read_points
    else:
        raise IngestionFailure(str(p), f"unsupported format '{suffix}'")

    try:
        with capture_native_stderr_to_logger(LOG):
            P = reader(p)
    except (RuntimeError, OSError) as e:
        raise IngestionFailure(str(p), str(e)) from e

    if P.size == 0:
        raise IngestionFailure(str(p), "no points")
    try:
        points = PointSet(P)
    except InvalidInput as e:
        raise IngestionFailure(str(p), str(e)) from e
    LOG.info(f"loaded cloud: {p} ({len(points)} pts)")
    return points
