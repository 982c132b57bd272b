import os

import numpy as np
import pytest

from sdcintegration.exceptions import DimensionMismatch
from sdcintegration.sdc import SDCController
from sdcintegration.sdc.encap import StateVector
from sdcintegration.sdc.reporting import (
    ResultSink,
    evaluate_error,
    plot_error_records,
    read_error_records,
    read_history,
)


def test_evaluate_error_is_infinity_norm():
    exact = lambda t: StateVector.from_array([1.0, 2.0, 3.0])
    state = StateVector.from_array([1.0, 2.5, 2.9])

    assert evaluate_error(exact, state, 0.0) == pytest.approx(0.5)


def test_evaluate_error_dimension_mismatch():
    exact = lambda t: StateVector.from_array([1.0, 2.0])
    with pytest.raises(DimensionMismatch):
        evaluate_error(exact, StateVector(3), 0.0)


def test_error_records_append(tmp_path):
    sink = ResultSink(str(tmp_path / "out"))

    path = sink.append_error(10, 0.5, 1.25e-5)
    sink.append_error(10, 0.25, 4e-7)

    assert path == os.path.join(str(tmp_path / "out"), "10.dat")
    with open(path, encoding="utf-8") as f:
        assert f.read() == "10 0.5 1.25e-05\n10 0.25 4e-07\n"
    assert read_error_records(path) == [(10, 0.5, 1.25e-5), (10, 0.25, 4e-7)]


def test_iteration_records(tmp_path):
    sink = ResultSink(str(tmp_path))
    path = sink.append_iterations(10, 0.5, [4, 3])

    with open(path, encoding="utf-8") as f:
        assert f.read() == "0.5  4\n0.5  3\n"
    assert path.endswith("10_iter.dat")


def test_malformed_error_record(tmp_path):
    path = tmp_path / "bad.dat"
    path.write_text("10 0.5\n", encoding="utf-8")

    with pytest.raises(ValueError, match="expected 3 columns"):
        read_error_records(str(path))


def test_history_file(tmp_path, dahlquist, lobatto_level, short_run):
    result = SDCController(lobatto_level, short_run).run(
        dahlquist.exact_solution(0.0), exact=dahlquist.exact_solution
    )
    sink = ResultSink(str(tmp_path))

    path = sink.write_history("run.h5", result, short_run)
    history = read_history(path)

    assert history["iterations"].tolist() == result.iterations_per_step
    np.testing.assert_allclose(history["time"], [0.0, 0.1, 0.2])
    assert history["status"] == ["converged"] * 3
    np.testing.assert_allclose(history["error"], result.step_errors)
    np.testing.assert_allclose(history["end_state"], result.end_state.values)
    assert history["non_convergent_steps"] == 0
    assert history["configuration"]["quadrature"] == "gauss-lobatto"
    assert history["configuration"]["num_nodes"] == 3


def test_plot_error_records(tmp_path):
    records = [(10, 0.5, 1e-4), (10, 0.25, 4e-6), (20, 0.5, 1.1e-4), (20, 0.25, 5e-6)]
    filename = tmp_path / "errors.png"

    plot_error_records(records, filename=str(filename))

    assert filename.exists()
