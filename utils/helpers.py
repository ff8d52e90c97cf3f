from __future__ import annotations

import numpy as np

from .logger import Logger, CaptureStderrToLogger

# ============================================================================ #
# Logger / numpy
# ============================================================================ #
logger = Logger.get_logger("helpers")


def setup_numpy_print(precision: int = 6, linewidth: int = 180) -> None:
    """Consistent numpy printing for debugging."""
    np.set_printoptions(suppress=True, precision=precision, linewidth=linewidth)


# ============================================================================ #
# Math: vectors, formatting
# ============================================================================ #
def unit(v: np.ndarray) -> np.ndarray:
    """Return ``v`` scaled to unit length (zero vector stays zero)."""
    v = np.asarray(v, dtype=float)
    n = float(np.linalg.norm(v))
    if n <= 1e-12:
        return np.zeros_like(v)
    return v / n


def fmt_array(v, precision: int = 6) -> str:
    """Pretty numpy one-liner for logs."""
    return np.array2string(
        np.asarray(v),
        separator=", ",
        precision=precision,
        suppress_small=True,
        max_line_width=10_000,
    )


# ============================================================================ #
# Log sinks helpers re-exports
# ============================================================================ #
def capture_native_stderr_to_logger(log=None) -> CaptureStderrToLogger:
    """
    Context manager: captures native (C/C++) stderr and funnels it to our logger.
    Useful for chatty readers such as Open3D.
    """
    return CaptureStderrToLogger(log or logger)
