"""
Error evaluation and result persistence.

Error records are plain text, one ``element_count dt error`` line per run,
appended to ``<output_dir>/<element_count>.dat`` so that repeated runs with
different dt build up a convergence table. Full run histories go to HDF5.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from importlib.metadata import PackageNotFoundError, version
from typing import TYPE_CHECKING, Callable, Optional

import h5py
import matplotlib.pyplot as plt
import numpy as np

if TYPE_CHECKING:
    from sdcintegration.config import RunConfiguration
    from sdcintegration.sdc.controller import RunResult
    from sdcintegration.sdc.encap import StateVector

logger = logging.getLogger(__name__)

try:
    APP_VERSION = version("sdcintegration")
except PackageNotFoundError:
    APP_VERSION = "0.0.0-dev"


def evaluate_error(exact: Callable[[float], StateVector], end_state: StateVector, time: float) -> float:
    """
    Infinity-norm distance between the reference solution and a computed state.

    Args:
        exact: Reference solution evaluator.
        end_state: Computed state.
        time: Time at which the state was computed.

    Raises:
        DimensionMismatch: If the reference and computed states differ in dimension.

    Returns:
        ||exact(time) - end_state||_inf
    """
    return exact(time).copy().axpy(-1.0, end_state).infinity_norm()


@dataclass
class ErrorReport:
    error: float
    num_elements: int
    num_nodes: int
    dt: float
    iterations_per_step: list[int] = field(default_factory=list)
    non_convergent_steps: int = 0
    # Error at the end of every step, the last entry equals `error`
    step_errors: list[float] = field(default_factory=list)
    result: Optional[RunResult] = None

    @property
    def converged(self) -> bool:
        return self.non_convergent_steps == 0


class ResultSink:
    """Append-only text records plus HDF5 run histories under one output directory."""

    def __init__(self, output_dir: str) -> None:
        self.output_dir = output_dir

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(output_dir='{self.output_dir}')"

    def error_file(self, num_elements: int) -> str:
        return os.path.join(self.output_dir, f"{num_elements}.dat")

    def iteration_file(self, num_elements: int) -> str:
        return os.path.join(self.output_dir, f"{num_elements}_iter.dat")

    def append_error(self, num_elements: int, dt: float, error: float) -> str:
        """
        Append an ``element_count dt error`` record.

        Returns:
            Path of the file written.
        """
        os.makedirs(self.output_dir, exist_ok=True)
        path = self.error_file(num_elements)
        with open(path, "a", encoding="utf-8") as f:
            f.write(f"{num_elements} {dt} {error}\n")
        logger.debug(f"Appended error record to {path}")
        return path

    def append_iterations(self, num_elements: int, dt: float, iterations: list[int]) -> str:
        """
        Append one ``dt  iterations`` line per step.

        Returns:
            Path of the file written.
        """
        os.makedirs(self.output_dir, exist_ok=True)
        path = self.iteration_file(num_elements)
        with open(path, "a", encoding="utf-8") as f:
            for count in iterations:
                f.write(f"{dt}  {count}\n")
        return path

    def write_history(self, filename: str, result: RunResult, config: RunConfiguration | None = None) -> str:
        """
        Save the per-step history of a run to an HDF5 file in the output directory.

        Returns:
            Path of the file written.
        """
        os.makedirs(self.output_dir, exist_ok=True)
        path = os.path.join(self.output_dir, filename)
        logger.info(f"Saving run history to: {path}")

        with h5py.File(path, "w") as f:
            f.attrs["version"] = APP_VERSION
            f.attrs["t0"] = result.t0
            f.attrs["end_time"] = result.end_time
            f.attrs["non_convergent_steps"] = result.non_convergent_steps

            if config is not None:
                grp_cfg = f.create_group("configuration")
                for key, val in config.to_dict().items():
                    grp_cfg.attrs[key] = val

            grp_steps = f.create_group("steps")
            grp_steps.create_dataset("time", data=np.array([s.time for s in result.steps], dtype=np.float64))
            grp_steps.create_dataset("dt", data=np.array([s.dt for s in result.steps], dtype=np.float64))
            grp_steps.create_dataset("iterations", data=np.array(result.iterations_per_step, dtype=np.int64))
            grp_steps.create_dataset(
                "final_residual", data=np.array([s.final_residual for s in result.steps], dtype=np.float64)
            )
            grp_steps.create_dataset("error", data=np.array(result.step_errors, dtype=np.float64))
            grp_steps.create_dataset(
                "status", data=np.array([s.status.value for s in result.steps], dtype="S")
            )

            f.create_dataset("end_state", data=result.end_state.values, compression="gzip")

        return path


def read_history(path: str) -> dict:
    """Load a run history written by `ResultSink.write_history`."""
    with h5py.File(path, "r") as f:
        history = {key: f.attrs[key] for key in f.attrs}
        for key, dataset in f["steps"].items():
            history[key] = dataset[()]
        history["status"] = [s.decode("utf-8") for s in history["status"]]
        history["end_state"] = f["end_state"][()]
        if "configuration" in f:
            history["configuration"] = dict(f["configuration"].attrs)
    return history


def read_error_records(path: str) -> list[tuple[int, float, float]]:
    """
    Read ``element_count dt error`` records.

    Raises:
        ValueError: On a line that does not hold three numbers.
    """
    records: list[tuple[int, float, float]] = []
    with open(path, "r", encoding="utf-8") as f:
        for line_no, line in enumerate(f, start=1):
            parts = line.split()
            if not parts:
                continue
            if len(parts) != 3:
                raise ValueError(f"{path}:{line_no}: expected 3 columns, got {len(parts)}.")
            records.append((int(parts[0]), float(parts[1]), float(parts[2])))
    return records


def plot_error_records(records: list[tuple[int, float, float]], filename: str | None = None) -> None:
    """
    Plot error against dt on log-log axes, one line per element count.

    Args:
        records: ``(element_count, dt, error)`` tuples.
        filename: Save the figure here instead of showing it.
    """
    plt.rcParams["figure.constrained_layout.use"] = True
    fig = plt.figure(figsize=(7, 5))

    for num_elements in sorted({r[0] for r in records}):
        rows = sorted((r[1], r[2]) for r in records if r[0] == num_elements)
        dts, errors = zip(*rows)
        plt.loglog(dts, errors, 'o-', lw=2, label=f"{num_elements} elements")

    plt.grid(visible=True, which='major', axis='both', linestyle='-', color='gray', lw=0.5)
    plt.minorticks_on()
    plt.grid(visible=True, which='minor', axis='both', linestyle=':', color='gray', lw=0.5)

    plt.title("SDC error at final time")
    plt.xlabel("dt")
    plt.ylabel("Error (infinity norm)")
    plt.legend()

    if filename:
        fig.savefig(filename)
        plt.close(fig)
    else:
        plt.show()
