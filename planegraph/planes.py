"""Local plane fitting: centroid and PCA normal of a neighborhood."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Union

import numpy as np

from utils.config import DEGENERATE_EIG_TOL, MIN_NEIGHBORS
from utils.helpers import unit
from utils.logger import Logger

from .errors import DegenerateGeometry, InsufficientNeighbors, InvalidInput
from .kdtree import Neighborhood

LOG = Logger.get_logger("planes")

NeighborsLike = Union[np.ndarray, Neighborhood]


@dataclass(frozen=True, eq=False)
class PlaneFit:
    centroid: np.ndarray  # (3,)
    normal: np.ndarray  # (3,) unit, sign unconstrained
    eigenvalues: np.ndarray  # (3,) descending
    count: int
    degenerate: bool = False


def _coords(neighbors: NeighborsLike) -> np.ndarray:
    X = neighbors.points if isinstance(neighbors, Neighborhood) else neighbors
    X = np.asarray(X, dtype=np.float64)
    if X.ndim == 1 and X.size == 0:
        X = X.reshape(0, 3)
    if X.ndim != 2 or X.shape[1] != 3:
        raise InvalidInput(f"neighborhood must have shape (k, 3), got {X.shape}")
    return X


def centroid(neighbors: NeighborsLike) -> np.ndarray:
    """Component-wise mean of the neighborhood."""
    X = _coords(neighbors)
    if X.shape[0] == 0:
        raise InsufficientNeighbors(0, 1)
    return X.mean(0)


def _covariance(X: np.ndarray, c: np.ndarray) -> np.ndarray:
    A = X - c
    return (A.T @ A) / X.shape[0]


def _pca(X: np.ndarray, c: np.ndarray):
    """Eigenvalues (descending) and matching eigenvectors as columns."""
    w, V = np.linalg.eigh(_covariance(X, c))
    order = np.argsort(w)[::-1]
    w = np.clip(w[order], 0.0, None)
    return w, V[:, order]


def _is_degenerate(w: np.ndarray, tol: float) -> bool:
    # w descending; minor axis unique iff the two smallest differ
    scale = max(float(w[0]), np.finfo(float).tiny)
    return float(w[1] - w[2]) <= tol * scale


def normal(neighbors: NeighborsLike, min_neighbors: int = MIN_NEIGHBORS) -> np.ndarray:
    """Unit eigenvector of the smallest covariance eigenvalue."""
    return fit_plane(neighbors, min_neighbors=min_neighbors).normal


def fit_plane(
    neighbors: NeighborsLike,
    min_neighbors: int = MIN_NEIGHBORS,
    degenerate_tol: float = DEGENERATE_EIG_TOL,
    strict: bool = False,
) -> PlaneFit:
    """
    Total-least-squares plane through a neighborhood.

    Raises InsufficientNeighbors when k < max(3, min_neighbors). When the two
    smallest eigenvalues coincide the normal is any vector of that eigenspace;
    the fit is flagged ``degenerate`` (or DegenerateGeometry is raised when
    ``strict``).
    """
    X = _coords(neighbors)
    k = X.shape[0]
    required = max(3, int(min_neighbors))
    if k < required:
        raise InsufficientNeighbors(k, required)
    c = X.mean(0)
    w, V = _pca(X, c)
    n = unit(V[:, 2])
    degenerate = _is_degenerate(w, degenerate_tol)
    if degenerate and strict:
        raise DegenerateGeometry(w)
    return PlaneFit(centroid=c, normal=n, eigenvalues=w, count=k, degenerate=degenerate)
