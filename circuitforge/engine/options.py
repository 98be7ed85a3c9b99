"""Solver configuration.

Example usage:
    options = SolverOptions(dt=1e-5, max_newton_iters=50)
    solver = Solver(options)

    # or from a settings mapping (e.g. a UI panel)
    options = SolverOptions.from_dict({"dt": 1e-5, "v_tol": 1e-9})
"""

from __future__ import annotations
from dataclasses import dataclass, fields
from typing import Any, Mapping
import logging

logger = logging.getLogger(__name__)


@dataclass
class SolverOptions:
    """Numeric tolerances and limits for the MNA solver.

    Invalid values raise ValueError on construction.
    """

    v_tol: float = 1e-6
    """Convergence threshold on the 2-norm of the residual G*x - I."""

    i_tol: float = 1e-9
    """Reserved for current-based convergence; not used by the residual check."""

    dt: float = 1e-6
    """Initial transient time step (s)."""

    dt_min: float = 1e-9
    """Smallest accepted time step (s)."""

    dt_max: float = 1e-3
    """Largest accepted time step (s)."""

    max_newton_iters: int = 20
    """Newton-Raphson iterations per DC solve or time step."""

    gmin: float = 1e-12
    """Leak conductance from every node to ground (S). 0 disables it."""

    pivot_tol: float = 1e-15
    """Pivots smaller than this in magnitude mean a singular matrix."""

    def __post_init__(self):
        for name in ("v_tol", "i_tol", "dt_min", "dt_max", "pivot_tol"):
            if not getattr(self, name) > 0:
                raise ValueError(f"{name} must be positive, got {getattr(self, name)}")
        if self.gmin < 0:
            raise ValueError(f"gmin must be non-negative, got {self.gmin}")
        if self.max_newton_iters < 1:
            raise ValueError(f"max_newton_iters must be at least 1, got {self.max_newton_iters}")
        if self.dt_min > self.dt_max:
            raise ValueError(f"dt_min ({self.dt_min}) exceeds dt_max ({self.dt_max})")
        check_dt(self.dt, self.dt_min, self.dt_max)

    @classmethod
    def from_dict(cls, values: Mapping[str, Any]) -> SolverOptions:
        """Build options from a mapping, ignoring (and logging) unknown keys."""
        known = {f.name for f in fields(cls)}
        kwargs = {}
        for key, value in values.items():
            if key not in known:
                logger.warning(f"Ignoring unknown solver option {key!r}")
                continue
            kwargs[key] = int(value) if key == "max_newton_iters" else float(value)
        return cls(**kwargs)


def check_dt(dt: float, dt_min: float, dt_max: float) -> float:
    """Validate a time step against its bounds and return it."""
    if not dt_min <= dt <= dt_max:
        raise ValueError(f"dt={dt} outside allowed range [{dt_min}, {dt_max}]")
    return dt
