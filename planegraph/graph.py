"""Per-centroid plane graphs weighted by normal dissimilarity."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Iterator, Optional, Sequence, Tuple

import numpy as np
from scipy.sparse import coo_matrix, csr_matrix

from utils.logger import Logger

from .errors import InvalidInput
from .kdtree import Neighborhood

LOG = Logger.get_logger("graph")

# weight(u, u): there is no self edge, weight() returns this instead of a number
NO_EDGE = None


def plane_weight(n_u: np.ndarray, n_v: np.ndarray) -> float:
    """1 - sum_d |n_u[d] * n_v[d]|; ~0 for parallel normals of either sign."""
    n_u = np.asarray(n_u, dtype=float)
    n_v = np.asarray(n_v, dtype=float)
    return float(1.0 - np.abs(n_u * n_v).sum())


def weight_matrix(N: np.ndarray) -> np.ndarray:
    """Dense (k, k) weights for normals N (k, 3); the diagonal is meaningless."""
    N = np.asarray(N, dtype=float)
    return 1.0 - np.abs(N[:, None, :] * N[None, :, :]).sum(-1)


@dataclass(frozen=True, eq=False)
class PlaneGraph:
    """
    Complete undirected graph over the planes of one second-order
    neighborhood. Row/column ``u`` refers to original point ``tags[u]``.
    """

    tags: np.ndarray  # (k,)
    _weights: np.ndarray  # (k, k) contiguous, diagonal unused
    _mask: np.ndarray  # (k, k) bool, False on the diagonal

    @classmethod
    def from_normals(cls, tags: Sequence[int], normals: np.ndarray) -> "PlaneGraph":
        T = np.asarray(tags, dtype=np.int64).copy()
        N = np.asarray(normals, dtype=float)
        if N.shape != (T.shape[0], 3):
            raise InvalidInput(
                f"need one normal per tag: {T.shape[0]} tags, normals {N.shape}"
            )
        W = np.ascontiguousarray(weight_matrix(N))
        M = ~np.eye(T.shape[0], dtype=bool)
        W[~M] = 0.0
        for a in (T, W, M):
            a.setflags(write=False)
        return cls(T, W, M)

    @property
    def k(self) -> int:
        return int(self.tags.shape[0])

    def __len__(self) -> int:
        return self.k

    def _check(self, u: int, v: int) -> Tuple[int, int]:
        k = self.k
        if not (0 <= u < k and 0 <= v < k):
            raise IndexError(f"({u}, {v}) out of range for graph of size {k}")
        return int(u), int(v)

    def has_edge(self, u: int, v: int) -> bool:
        u, v = self._check(u, v)
        return bool(self._mask[u, v])

    def weight(self, u: int, v: int) -> Optional[float]:
        """Edge weight between rows u and v, or NO_EDGE when u == v."""
        u, v = self._check(u, v)
        if not self._mask[u, v]:
            return NO_EDGE
        return float(self._weights[u, v])

    def edges(self) -> Iterator[Tuple[int, int, float]]:
        """(tag_u, tag_v, weight) for every unordered pair u < v."""
        iu, iv = np.triu_indices(self.k, k=1)
        for u, v in zip(iu.tolist(), iv.tolist()):
            yield int(self.tags[u]), int(self.tags[v]), float(self._weights[u, v])

    @property
    def n_edges(self) -> int:
        return self.k * (self.k - 1) // 2

    def as_masked(self) -> np.ma.MaskedArray:
        """Weights as a masked array; the masked cells are the missing edges."""
        return np.ma.MaskedArray(self._weights.copy(), mask=~self._mask)


def build_graph(neighborhood: Neighborhood, normals: np.ndarray) -> PlaneGraph:
    """Graph over a tagged second-order neighborhood; normals indexed by tag."""
    normals = np.asarray(normals, dtype=float)
    T = neighborhood.tags
    if T.size and (T.min() < 0 or T.max() >= normals.shape[0]):
        raise InvalidInput(
            f"tags out of range for {normals.shape[0]} normals: "
            f"[{int(T.min())}, {int(T.max())}]"
        )
    N = normals[T]
    if not np.all(np.isfinite(N)):
        raise InvalidInput("neighborhood references planes without a normal")
    return PlaneGraph.from_normals(T, N)


def assemble_adjacency(graphs: Iterable[Optional[PlaneGraph]], n_points: int) -> csr_matrix:
    """
    Union of per-center graphs as a symmetric sparse matrix over point
    indices. Every stored entry is an edge; zero weights stay stored.
    """
    pairs = {}
    for g in graphs:
        if g is None:
            continue
        for a, b, w in g.edges():
            if a == b:
                continue
            key = (a, b) if a < b else (b, a)
            pairs.setdefault(key, w)
    if not pairs:
        return csr_matrix((n_points, n_points), dtype=float)
    ij = np.array(list(pairs.keys()), dtype=np.int64)
    w = np.fromiter(pairs.values(), dtype=float, count=len(pairs))
    rows = np.concatenate([ij[:, 0], ij[:, 1]])
    cols = np.concatenate([ij[:, 1], ij[:, 0]])
    data = np.concatenate([w, w])
    A = coo_matrix((data, (rows, cols)), shape=(n_points, n_points)).tocsr()
    LOG.debug(f"adjacency: {n_points} nodes {len(pairs)} edges")
    return A
