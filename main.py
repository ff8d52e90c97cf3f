"""Entry point: local planes and plane graphs for a point cloud file."""
from __future__ import annotations

import sys
from pathlib import Path

from utils.error_tracker import ErrorTracker
from utils.helpers import setup_numpy_print
from utils.logger import Logger

from planegraph.config import PipelineCfg
from planegraph.errors import IngestionFailure
from planegraph.pipeline import run_file
from planegraph.report import LogObserver

CLOUDS_ROOT = Path("PointClouds")
CLOUD_NAME = "xy_nearly.obj"
RADIUS = 4.0
WORKERS = 1
VERBOSE = True

LOG = Logger.get_logger("main")


def main() -> int:
    ErrorTracker.install_excepthook()
    ErrorTracker.install_signal_handlers()
    if VERBOSE:
        Logger.configure(level="DEBUG")

    cfg = PipelineCfg(
        radius=RADIUS,
        workers=WORKERS,
        clouds_root=CLOUDS_ROOT,
        cloud_name=CLOUD_NAME,
        progress=True,
    )
    setup_numpy_print(cfg.display_precision)
    observer = LogObserver(verbose=VERBOSE, precision=cfg.display_precision)
    # buffered reports still reach the log if the run dies mid-phase
    ErrorTracker.register_cleanup(observer.flush)
    try:
        result = run_file(cfg, observer)
    except IngestionFailure as e:
        LOG.error(f"the cloud could not be loaded: {e}")
        return 1
    LOG.info(f"done: {result.summary()}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
