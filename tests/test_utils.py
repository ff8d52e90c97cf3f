import sys

import numpy as np

from utils.error_tracker import ErrorTracker
from utils.helpers import fmt_array, setup_numpy_print, unit
from utils.logger import Logger


def test_fmt_array_precision():
    s = fmt_array([1.0 / 3.0, 2.0], precision=3)
    assert s.startswith("[0.333,")
    assert "0.3333" not in s


def test_unit():
    np.testing.assert_allclose(unit([3.0, 0.0, 4.0]), [0.6, 0.0, 0.8])
    np.testing.assert_array_equal(unit(np.zeros(3)), np.zeros(3))


def test_excepthook_install_and_restore():
    orig = sys.excepthook
    ErrorTracker.install_excepthook()
    try:
        assert sys.excepthook is not orig
    finally:
        ErrorTracker.uninstall_excepthook()
    assert sys.excepthook is orig


def test_report_logs_without_raising():
    try:
        raise RuntimeError("boom")
    except RuntimeError as e:
        ErrorTracker.report(e)
    ErrorTracker.report(ValueError("no traceback"))


def test_progress_passthrough():
    assert list(Logger.progress(range(3), desc="t", disable=True)) == [0, 1, 2]


def test_cleanup_runs_every_registered_func(monkeypatch):
    monkeypatch.setattr(ErrorTracker, "_cleanup_funcs", [])
    calls = []

    def broken():
        raise RuntimeError("cleanup failure")

    ErrorTracker.register_cleanup(lambda: calls.append("a"))
    ErrorTracker.register_cleanup(broken)
    ErrorTracker.register_cleanup(lambda: calls.append("b"))
    ErrorTracker.run_cleanup()
    assert calls == ["a", "b"]


def test_setup_numpy_print_sets_precision():
    before = np.get_printoptions()
    try:
        setup_numpy_print(precision=3)
        assert np.get_printoptions()["precision"] == 3
    finally:
        np.set_printoptions(**before)
