from __future__ import annotations

from pathlib import Path


# ============================== PROJECT DEFAULTS =============================

# Where input clouds live (code can override this)
CLOUDS_ROOT: Path = Path("PointClouds")
DEFAULT_CLOUD_NAME: str = "xy_nearly.obj"

# Geometry
DIMS: int = 3
KDTREE_NORM: int = 2  # 2-norm (Euclidean); the only supported value
KDTREE_LEAF_SIZE: int = 16

# Neighborhood radius in units of the cloud. Should depend on point density
# and noise; a fixed value is used until that is modelled.
NEIGHBOR_RADIUS: float = 4.0

# Minimum neighbors for a well-defined covariance eigenbasis
MIN_NEIGHBORS: int = DIMS

# Relative gap below which the two smallest covariance eigenvalues are treated
# as equal (minor axis not unique).
DEGENERATE_EIG_TOL: float = 1e-9

# Precision used when printing coordinates and weights in reports
DISPLAY_PRECISION: int = 6

# Mesh formats go through the triangle-mesh reader (vertices only).
MESH_SUFFIXES = (".obj", ".off", ".gltf", ".glb", ".stl")
CLOUD_SUFFIXES = (".ply", ".pcd", ".xyz", ".xyzn", ".xyzrgb", ".pts")
