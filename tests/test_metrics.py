"""Tests for derived metrics and steady-state detection."""

import math

import pytest

from leanline import SimulationEngine
from leanline.metrics import (
    average_lead_time,
    check_convergence,
    coefficient_of_variation,
    lead_time_histogram,
    littles_law_check,
    throughput,
    throughput_from_count,
)
from leanline.models import CompletionRecord

from conftest import make_line


class TestThroughput:
    """Pieces per hour after warm-up, one tick being one second."""

    def test_zero_before_warmup_ends(self):
        assert throughput_from_count(5, 100, 100) == 0.0

    def test_counts_only_post_warmup_completions(self):
        completions = [CompletionRecord(time=t, lead_time=5) for t in (50, 150, 200)]
        # 2 pieces in 100 s
        assert throughput(completions, 200, 100) == pytest.approx(72.0)

    def test_no_warmup(self):
        completions = [CompletionRecord(time=t, lead_time=5) for t in range(5, 1001, 5)]
        assert throughput(completions, 1000) == pytest.approx(720.0)


class TestLeadTime:
    """Reported lead time averages the most recent completions."""

    def test_empty(self):
        assert average_lead_time([]) == 0.0

    def test_window_of_twenty(self):
        values = [100] * 10 + [10] * 20
        assert average_lead_time(values) == 10.0

    def test_short_history(self):
        assert average_lead_time([4, 6]) == 5.0


class TestConvergence:
    """Coefficient of variation over recent throughput samples."""

    def test_cv_of_constant_series(self):
        assert coefficient_of_variation([720.0] * 10) == 0.0

    def test_cv_zero_mean(self):
        assert coefficient_of_variation([0.0, 0.0]) is None

    def test_not_enough_samples(self):
        status = check_convergence([720.0] * 49, 1000)
        assert not status.converged
        assert status.message == "Simulation running: collecting data..."

    def test_zero_mean_waits(self):
        status = check_convergence([0.0] * 50, 1000)
        assert not status.converged
        assert status.message == "Waiting for stabilization..."

    def test_steady_series_converges(self):
        status = check_convergence([700.0, 710.0] * 25, 1000)
        assert status.converged
        assert status.cv < 0.05
        assert status.message.startswith("Steady state reached")

    def test_noisy_series_does_not_converge(self):
        status = check_convergence([100.0, 900.0] * 25, 1000)
        assert not status.converged
        assert status.message.startswith("Not stable")

    def test_only_last_window_counts(self):
        samples = [100.0, 900.0] * 25 + [720.0] * 50
        assert check_convergence(samples, 1000).converged


class TestLittlesLaw:
    """L = lambda x W."""

    def test_exact_match(self):
        check = littles_law_check(3, 720, 15)
        assert check.expected_wip == pytest.approx(3.0)
        assert check.within_tolerance

    def test_outside_tolerance(self):
        check = littles_law_check(3, 720, 20)
        assert check.relative_error == pytest.approx(1 / 3)
        assert not check.within_tolerance

    def test_zero_wip(self):
        assert littles_law_check(0, 0, 0).relative_error == 0.0
        assert math.isinf(littles_law_check(0, 720, 5).relative_error)


class TestHistogram:
    """Equal-width lead-time bins."""

    def test_counts_sum_to_total(self):
        bins = lead_time_histogram([5, 6, 7, 8, 20, 40], bins=5)
        assert len(bins) == 5
        assert sum(count for _, count in bins) == 6
        assert bins[0][0] == "5-12"

    def test_identical_values(self):
        bins = lead_time_histogram([7, 7, 7], bins=3)
        assert sum(count for _, count in bins) == 3

    def test_empty(self):
        assert lead_time_histogram([]) == []


class TestSteadyLine:
    """Balanced deterministic line reaches a known steady state."""

    def test_throughput_and_lead_time(self, steady_line):
        engine = SimulationEngine(steady_line, seed=1)
        engine.run(1000)
        assert engine.throughput() == pytest.approx(720.0)
        assert engine.average_lead_time() == 15.0

    def test_littles_law_holds(self, steady_line):
        engine = SimulationEngine(steady_line, seed=1)
        engine.run(1000)
        check = engine.littles_law()
        assert check.observed_wip == pytest.approx(3.0)
        assert check.within_tolerance

    @pytest.mark.parametrize("name", ["bottleneck", "high_volatility"])
    def test_littles_law_on_stochastic_line(self, loader, name):
        """Long seeded run of a variable line: mean WIP ~ throughput x lead time."""
        engine = SimulationEngine(loader.load_line(name), seed=42)
        engine.run(30000)
        assert engine.is_converged
        check = engine.littles_law()
        assert check.observed_wip > 0
        assert check.within_tolerance, (
            f"observed {check.observed_wip:.2f} vs expected {check.expected_wip:.2f}"
        )

    def test_converges_after_fifty_samples(self, steady_line):
        engine = SimulationEngine(steady_line, seed=1)
        engine.run(345)
        assert not engine.is_converged
        engine.run(5)
        assert engine.is_converged
        assert engine.convergence.cv == 0.0

    def test_no_warmup_counts_start_up(self):
        engine = SimulationEngine(make_line([5, 5, 5], capacities=[2, 2], wip=3), seed=1)
        engine.run(1000)
        assert engine.throughput() == pytest.approx(712.8)
