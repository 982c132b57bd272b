import logging

import numpy as np
import pytest

from sdcintegration.config import QuadratureType, RunConfiguration
from sdcintegration.exceptions import ConfigurationError, SweepFailure
from sdcintegration.problems import DahlquistIMEXProblem
from sdcintegration.sdc import Level, SDCController, StepStatus, step_intervals


def test_step_intervals_shorten_last_step():
    intervals = step_intervals(0.0, 0.5, 0.3)

    assert len(intervals) == 2
    assert intervals[0] == (0.0, 0.3)
    assert intervals[1][0] == pytest.approx(0.3)
    assert intervals[1][1] == pytest.approx(0.2)
    assert intervals[1][0] + intervals[1][1] == pytest.approx(0.5, abs=1e-15)


def test_step_intervals_exact_multiple():
    intervals = step_intervals(0.0, 1.0, 0.1)

    assert len(intervals) == 10
    assert all(width == pytest.approx(0.1) for _, width in intervals)


def test_step_intervals_empty_duration():
    assert step_intervals(1.0, 1.0, 0.1) == []


@pytest.mark.parametrize("t0, tend, dt", [(0.0, 1.0, 0.0), (0.0, 1.0, -0.5), (1.0, 0.0, 0.1)])
def test_step_intervals_rejects(t0, tend, dt):
    with pytest.raises(ConfigurationError):
        step_intervals(t0, tend, dt)


def test_level_rejects_zero_nodes(dahlquist):
    with pytest.raises(ConfigurationError):
        Level.create(dahlquist, num_nodes=0, quadrature_type=QuadratureType.GAUSS_RADAU)


def test_tolerance_uses_larger_of_absolute_and_relative(lobatto_level):
    controller = SDCController(lobatto_level, RunConfiguration(abs_residual_tol=1e-10, rel_residual_tol=1e-3))

    assert controller.tolerance(2.0) == pytest.approx(2e-3)
    assert controller.tolerance(0.0) == 1e-10


def test_run_converges(dahlquist, lobatto_level, short_run):
    controller = SDCController(lobatto_level, short_run)

    result = controller.run(dahlquist.exact_solution(0.0))

    assert result.number_of_steps == 3
    assert result.converged
    assert all(step.status is StepStatus.CONVERGED for step in result.steps)
    assert all(1 <= n <= short_run.max_iterations for n in result.iterations_per_step)
    assert all(step.final_residual <= short_run.abs_residual_tol for step in result.steps)
    assert result.end_time == pytest.approx(0.3)
    np.testing.assert_allclose(result.end_state.values, dahlquist.exact_solution(0.3).values, atol=1e-6)


def test_run_with_shortened_last_step(dahlquist, lobatto_level):
    config = RunConfiguration(dt=0.3, tend=0.5)
    result = SDCController(lobatto_level, config).run(dahlquist.exact_solution(0.0))

    assert [step.dt for step in result.steps] == pytest.approx([0.3, 0.2])
    assert result.end_time == pytest.approx(0.5)
    np.testing.assert_allclose(result.end_state.values, dahlquist.exact_solution(0.5).values, rtol=1e-3)


def test_iteration_cap_is_reported_and_run_continues(dahlquist, lobatto_level, caplog):
    config = RunConfiguration(dt=0.1, tend=0.3, max_iterations=1, abs_residual_tol=1e-14)

    with caplog.at_level(logging.WARNING, logger="sdcintegration"):
        result = SDCController(lobatto_level, config).run(dahlquist.exact_solution(0.0))

    assert result.number_of_steps == 3
    assert result.non_convergent_steps == 3
    assert all(step.status is StepStatus.MAX_ITER_REACHED for step in result.steps)
    assert result.iterations_per_step == [1, 1, 1]
    assert result.end_state.is_finite()
    assert "did not converge" in caplog.text


def test_step_callback(dahlquist, lobatto_level, short_run):
    seen = []
    SDCController(lobatto_level, short_run).run(dahlquist.exact_solution(0.0), on_step_end=seen.append)

    assert [step.index for step in seen] == [0, 1, 2]


def test_zero_duration_returns_initial_state(dahlquist, lobatto_level):
    config = RunConfiguration(t0=1.0, tend=1.0)
    initial = dahlquist.exact_solution(1.0)

    result = SDCController(lobatto_level, config).run(initial)

    assert result.number_of_steps == 0
    assert result.end_time == 1.0
    np.testing.assert_array_equal(result.end_state.values, initial.values)


def test_sweep_failure_aborts_run(short_run, caplog):
    problem = DahlquistIMEXProblem(fail_after=2)
    level = Level.create(problem, num_nodes=2, quadrature_type=QuadratureType.GAUSS_RADAU)
    seen = []

    with caplog.at_level(logging.ERROR, logger="sdcintegration"):
        with pytest.raises(SweepFailure) as excinfo:
            SDCController(level, short_run).run(problem.exact_solution(0.0), on_step_end=seen.append)

    assert excinfo.value.step_index == 0
    assert excinfo.value.node_index == 1
    assert seen == []
    assert "Aborting run" in caplog.text


def test_step_intervals_tiny_duration_takes_one_step():
    assert step_intervals(0.0, 1e-12, 0.1) == [(0.0, 1e-12)]


def test_step_intervals_end_exactly_at_tend():
    tend = 1.0 + 1e-13
    intervals = step_intervals(0.0, tend, 0.1)

    assert len(intervals) == 10
    time, width = intervals[-1]
    assert time + width == pytest.approx(tend, abs=1e-15)


def test_steps_keep_latest_node_residuals(dahlquist, lobatto_level, short_run):
    result = SDCController(lobatto_level, short_run).run(dahlquist.exact_solution(0.0))

    for step in result.steps:
        assert step.node_residuals.shape == (3,)
        assert float(np.max(step.node_residuals)) == step.final_residual


def test_step_errors_against_reference(dahlquist, lobatto_level, short_run):
    controller = SDCController(lobatto_level, short_run)

    with_reference = controller.run(dahlquist.exact_solution(0.0), exact=dahlquist.exact_solution)
    without_reference = controller.run(dahlquist.exact_solution(0.0))

    assert len(with_reference.step_errors) == 3
    assert all(0.0 <= error < 1e-6 for error in with_reference.step_errors)
    reference = dahlquist.exact_solution(with_reference.end_time)
    expected = reference.copy().axpy(-1.0, with_reference.end_state).infinity_norm()
    assert with_reference.step_errors[-1] == expected
    assert all(np.isnan(error) for error in without_reference.step_errors)
