"""
The SDC engine: collocation quadrature, state vectors, the IMEX sweeper,
the step controller and error reporting. It has no knowledge of meshes.
"""
from sdcintegration.sdc.controller import Level, RunResult, SDCController, Step, StepStatus, step_intervals
from sdcintegration.sdc.encap import StateVector, VectorFactory
from sdcintegration.sdc.quadrature import QuadratureRule, quadrature_factory
from sdcintegration.sdc.reporting import ErrorReport, ResultSink, evaluate_error
from sdcintegration.sdc.sweeper import IMEXSweeper

__all__ = [
    "Level",
    "RunResult",
    "SDCController",
    "Step",
    "StepStatus",
    "step_intervals",
    "StateVector",
    "VectorFactory",
    "QuadratureRule",
    "quadrature_factory",
    "ErrorReport",
    "ResultSink",
    "evaluate_error",
    "IMEXSweeper",
]
