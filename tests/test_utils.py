"""Tests for utility helpers, errors and the package entry points."""

import logging
import math

import pytest

import ns2stat
from ns2stat.core.errors import (
    InputTooLargeError,
    Ns2StatError,
    RankingUndefinedError,
    UnknownPlayerError,
)
from ns2stat.core.utils import PerformanceMonitor, is_finite, ratio, timed


class TestRatio:
    """Tests for ratio()."""

    def test_plain_division(self):
        assert ratio(3, 4) == 0.75

    def test_zero_over_zero_is_nan(self):
        assert math.isnan(ratio(0, 0))

    def test_positive_over_zero_is_inf(self):
        assert ratio(5, 0) == math.inf
        assert ratio(-5, 0) == -math.inf

    def test_is_finite(self):
        assert is_finite(1.5)
        assert not is_finite(math.nan)
        assert not is_finite(math.inf)


class TestTiming:
    """Tests for timed and PerformanceMonitor."""

    def test_timed_keeps_result_and_name(self):
        @timed
        def double(x):
            return 2 * x

        assert double(4) == 8
        assert double.__name__ == "double"

    def test_performance_monitor(self, caplog):
        with caplog.at_level(logging.INFO, logger="ns2stat.core.utils"):
            with PerformanceMonitor("loading") as monitor:
                pass
        assert monitor.elapsed >= 0
        assert "loading completed" in caplog.text

    def test_performance_monitor_does_not_swallow(self):
        with pytest.raises(RuntimeError):
            with PerformanceMonitor("failing"):
                raise RuntimeError("boom")


class TestErrors:
    """Tests for the exception hierarchy."""

    def test_hierarchy(self):
        assert issubclass(InputTooLargeError, ValueError)
        assert issubclass(UnknownPlayerError, LookupError)
        assert issubclass(RankingUndefinedError, ArithmeticError)
        for error in (InputTooLargeError, UnknownPlayerError, RankingUndefinedError):
            assert issubclass(error, Ns2StatError)

    def test_messages(self):
        assert "21" in str(InputTooLargeError(21, 20))
        assert str(UnknownPlayerError(["a", 7])) == "Unknown player(s): a, 7"
        assert "did not converge" in str(RankingUndefinedError("did not converge", 1000))


class TestPackage:
    """Tests for the lazy package attributes."""

    def test_lazy_exports(self):
        from ns2stat.domains.aggregate import compute

        assert ns2stat.compute is compute
        assert callable(ns2stat.rank)
        assert isinstance(ns2stat.__version__, str)

    def test_unknown_attribute(self):
        with pytest.raises(AttributeError):
            ns2stat.does_not_exist
