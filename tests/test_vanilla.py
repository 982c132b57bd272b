import math

import pytest

from sdcintegration.config import RunConfiguration
from sdcintegration.exceptions import ConfigurationError
from sdcintegration.sdc.controller import StepStatus
from sdcintegration.sdc.reporting import ResultSink, read_error_records
from sdcintegration.vanilla import run_convergence_study, run_vanilla_sdc


def test_default_run_is_accurate():
    report = run_vanilla_sdc(RunConfiguration())

    assert report.error < 1e-3
    assert report.num_elements == 10
    assert report.result.number_of_steps == 1
    assert report.result.end_time == pytest.approx(0.5)


def test_more_nodes_reduce_the_error():
    three = run_vanilla_sdc(RunConfiguration(num_nodes=3, max_iterations=50))
    five = run_vanilla_sdc(RunConfiguration(num_nodes=5, max_iterations=50))

    assert five.error < three.error


@pytest.mark.parametrize("quadrature", ["gauss-radau", "gauss-legendre"])
def test_other_node_families(quadrature):
    report = run_vanilla_sdc(RunConfiguration(num_nodes=3, quadrature=quadrature, max_iterations=50))
    assert report.error < 1e-3


def test_smaller_steps_reduce_the_error():
    reports = run_convergence_study(RunConfiguration(max_iterations=50), dts=[0.5, 0.25])

    assert [r.dt for r in reports] == [0.5, 0.25]
    assert reports[1].error < reports[0].error
    assert reports[1].result.number_of_steps == 2


def test_remainder_step():
    report = run_vanilla_sdc(RunConfiguration(dt=0.3, tend=0.5, max_iterations=50))

    assert [step.dt for step in report.result.steps] == pytest.approx([0.3, 0.2])
    assert report.result.end_time == pytest.approx(0.5)
    assert report.error < 1e-3


def test_iteration_cap_still_reports_error():
    report = run_vanilla_sdc(RunConfiguration(abs_residual_tol=1e-14, max_iterations=1, tend=1.0))

    assert report.non_convergent_steps == 2
    assert not report.converged
    assert all(step.status is StepStatus.MAX_ITER_REACHED for step in report.result.steps)
    assert report.iterations_per_step == [1, 1]
    assert math.isfinite(report.error)


def test_zero_nodes_fail_before_stepping():
    with pytest.raises(ConfigurationError):
        RunConfiguration.from_overrides(["num_nodes=0"])


def test_results_are_appended(tmp_path):
    sink = ResultSink(str(tmp_path))
    config = RunConfiguration(output_dir=str(tmp_path))

    report = run_vanilla_sdc(config, sink=sink)

    assert read_error_records(sink.error_file(10)) == [(10, 0.5, report.error)]
    with open(sink.iteration_file(10), encoding="utf-8") as f:
        assert f.read() == f"0.5  {report.iterations_per_step[0]}\n"


def test_error_recorded_for_every_step():
    report = run_vanilla_sdc(RunConfiguration(dt=0.25, tend=1.0, max_iterations=50))

    assert len(report.step_errors) == 4
    assert report.step_errors[-1] == report.error
    assert all(math.isfinite(error) and error < 1e-3 for error in report.step_errors)
    assert report.result.step_errors == report.step_errors


def test_tiny_duration_still_reaches_tend():
    report = run_vanilla_sdc(RunConfiguration(tend=1e-12))

    assert report.result.number_of_steps == 1
    assert report.result.end_time == pytest.approx(1e-12, abs=1e-20)
    assert report.error < 1e-10
