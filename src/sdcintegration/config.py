"""
Run Configuration
=================
This module defines the immutable parameter set of one SDC run.

Why is this file needed?
------------------------
1. Single source: node count, quadrature family, spatial resolution, time
   stepping and tolerances are supplied once at setup and never change
   during a run.
2. Validation: every invalid combination is rejected here with a
   ConfigurationError, before any stepping begins.
3. Command line: runs are configured with `key=value` tokens
   (e.g. `num_nodes=4 dt=0.25`), parsed by `RunConfiguration.from_overrides`.

Exports:
    QuadratureType: Collocation node family.
    RunConfiguration: Frozen dataclass with the run parameters.
"""
from __future__ import annotations

import dataclasses
import logging
import math
from dataclasses import dataclass
from enum import StrEnum
from typing import Any, Iterable

from sdcintegration.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


class QuadratureType(StrEnum):
    GAUSS_LOBATTO = "gauss-lobatto"
    GAUSS_RADAU = "gauss-radau"
    GAUSS_LEGENDRE = "gauss-legendre"

    @property
    def minimum_nodes(self) -> int:
        """Smallest node count for which the family is defined."""
        return 2 if self is QuadratureType.GAUSS_LOBATTO else 1

    @property
    def left_is_node(self) -> bool:
        return self is QuadratureType.GAUSS_LOBATTO

    @property
    def right_is_node(self) -> bool:
        return self is not QuadratureType.GAUSS_LEGENDRE

    @classmethod
    def parse(cls, value: str | QuadratureType) -> QuadratureType:
        """
        Resolve a family from its value or a spelling like 'GaussLobatto' or 'gauss_radau'.

        Raises:
            ConfigurationError: If the name matches no family.
        """
        if isinstance(value, cls):
            return value
        key = str(value).strip().lower().replace("-", "").replace("_", "")
        for member in cls:
            if member.value.replace("-", "") == key:
                return member
        raise ConfigurationError(
            f"Unknown quadrature type: {value!r}. "
            f"Expected one of {', '.join(m.value for m in cls)}."
        )


@dataclass(frozen=True)
class RunConfiguration:
    # Collocation
    num_nodes: int = 3
    quadrature: QuadratureType = QuadratureType.GAUSS_LOBATTO

    # Space
    num_elements: int = 10
    velocity: float = 0.1
    viscosity: float = 0.01
    wavenumber: int = 1

    # Time
    dt: float = 0.5
    t0: float = 0.0
    tend: float = 0.5
    max_iterations: int = 20

    # Convergence
    abs_residual_tol: float = 1e-10
    rel_residual_tol: float = 0.0

    output_dir: str = "solution_sdc"

    def __post_init__(self) -> None:
        # Accept 'gauss-radau' style strings from callers
        if not isinstance(self.quadrature, QuadratureType):
            object.__setattr__(self, "quadrature", QuadratureType.parse(self.quadrature))
        self.validate()

    @property
    def duration(self) -> float:
        return self.tend - self.t0

    def validate(self) -> None:
        """
        Check the configuration for consistency.

        Raises:
            ConfigurationError: On the first invalid parameter found.
        """
        if self.num_nodes < self.quadrature.minimum_nodes:
            raise ConfigurationError(
                f"{self.quadrature.value} quadrature requires at least "
                f"{self.quadrature.minimum_nodes} node(s), got num_nodes={self.num_nodes}."
            )
        if self.num_elements < 3:
            raise ConfigurationError(f"num_elements must be at least 3, got {self.num_elements}.")
        if self.wavenumber < 1:
            raise ConfigurationError(f"wavenumber must be positive, got {self.wavenumber}.")
        if self.viscosity < 0.0:
            raise ConfigurationError(f"viscosity must be non-negative, got {self.viscosity}.")
        for name in ("dt", "t0", "tend", "velocity", "abs_residual_tol", "rel_residual_tol"):
            if not math.isfinite(getattr(self, name)):
                raise ConfigurationError(f"{name} must be finite, got {getattr(self, name)}.")
        if self.dt <= 0.0:
            raise ConfigurationError(f"dt must be positive, got {self.dt}.")
        if self.tend < self.t0:
            raise ConfigurationError(f"tend ({self.tend}) must not precede t0 ({self.t0}).")
        if self.max_iterations < 1:
            raise ConfigurationError(f"max_iterations must be at least 1, got {self.max_iterations}.")
        if self.abs_residual_tol < 0.0 or self.rel_residual_tol < 0.0:
            raise ConfigurationError(
                f"Residual tolerances must be non-negative, got abs={self.abs_residual_tol}, "
                f"rel={self.rel_residual_tol}."
            )

    def replace(self, **changes: Any) -> RunConfiguration:
        """Return a validated copy with the given fields changed."""
        return dataclasses.replace(self, **changes)

    def to_dict(self) -> dict[str, Any]:
        data = dataclasses.asdict(self)
        data["quadrature"] = self.quadrature.value
        return data

    @classmethod
    def from_overrides(cls, tokens: Iterable[str], base: RunConfiguration | None = None) -> RunConfiguration:
        """
        Build a configuration from `key=value` tokens applied on top of `base`.

        Args:
            tokens: Overrides such as ``["num_nodes=4", "quadrature=GaussRadau"]``.
            base: Configuration to start from (defaults when omitted).

        Raises:
            ConfigurationError: On malformed tokens, unknown keys or unparsable values.
        """
        base = base if base is not None else cls()
        fields = {f.name for f in dataclasses.fields(cls)}
        changes: dict[str, Any] = {}

        for token in tokens:
            key, sep, raw = token.partition("=")
            key = key.strip()
            if not sep or not key:
                raise ConfigurationError(f"Expected key=value, got {token!r}.")
            if key not in fields:
                raise ConfigurationError(f"Unknown configuration key: {key!r}.")

            current = getattr(base, key)
            try:
                if isinstance(current, QuadratureType):
                    value: Any = QuadratureType.parse(raw)
                else:
                    value = type(current)(raw.strip())
            except ValueError as e:
                raise ConfigurationError(f"Invalid value for {key}: {raw!r} ({e}).") from e

            logger.debug(f"Configuration override: {key}={value!r}")
            changes[key] = value

        return base.replace(**changes)
