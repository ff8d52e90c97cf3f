"""Configuration dataclasses for the plane graph pipeline."""
from __future__ import annotations

from dataclasses import dataclass, replace
from pathlib import Path

from utils import config as ucfg

from .errors import InvalidInput


@dataclass(frozen=True)
class PipelineCfg:
    radius: float = ucfg.NEIGHBOR_RADIUS
    dims: int = ucfg.DIMS
    norm: int = ucfg.KDTREE_NORM
    leaf_size: int = ucfg.KDTREE_LEAF_SIZE
    min_neighbors: int = ucfg.MIN_NEIGHBORS
    degenerate_tol: float = ucfg.DEGENERATE_EIG_TOL
    workers: int = 1  # -1: all cores
    clouds_root: Path = ucfg.CLOUDS_ROOT
    cloud_name: str = ucfg.DEFAULT_CLOUD_NAME
    display_precision: int = ucfg.DISPLAY_PRECISION
    progress: bool = False

    @property
    def cloud_path(self) -> Path:
        return Path(self.clouds_root) / self.cloud_name

    def with_(self, **changes) -> "PipelineCfg":
        return replace(self, **changes)

    def validate(self) -> "PipelineCfg":
        if not (self.radius >= 0.0):
            raise InvalidInput(f"radius must be >= 0, got {self.radius}")
        if self.dims != 3:
            raise InvalidInput(f"only 3-D clouds are supported, got dims={self.dims}")
        if self.norm != 2:
            raise InvalidInput(f"only the 2-norm is supported, got norm={self.norm}")
        if self.min_neighbors < self.dims:
            raise InvalidInput(
                f"min_neighbors ({self.min_neighbors}) must be >= dims ({self.dims})"
            )
        if self.leaf_size < 1:
            raise InvalidInput(f"leaf_size must be >= 1, got {self.leaf_size}")
        if self.workers == 0 or self.workers < -1:
            raise InvalidInput(f"workers must be >= 1 or -1, got {self.workers}")
        if self.degenerate_tol < 0.0:
            raise InvalidInput("degenerate_tol must be >= 0")
        return self
