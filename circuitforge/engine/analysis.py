"""Transient run loop with node probes (the data an oscilloscope view samples)."""

from __future__ import annotations
from typing import NamedTuple, Sequence
import logging

import jax.numpy as jnp
from jax import Array

from .solver import Solver

logger = logging.getLogger(__name__)


class Waveform(NamedTuple):
    """Sampled transient result, one row per accepted step."""
    time: Array       # (n_steps,) time at the end of each step
    values: Array     # (n_steps, n_probes) probed node voltages
    converged: Array  # (n_steps,) Newton convergence flag per step
    probes: tuple[int, ...]

    def trace(self, node_id: int) -> Array:
        """Voltage samples of one probed node."""
        return self.values[:, self.probes.index(node_id)]


def run_transient(
    solver: Solver,
    duration: float,
    probes: Sequence[int] = (),
) -> Waveform:
    """
    Step a finalized solver forward by `duration` seconds at its fixed dt.

    Each step evaluates sources at the end of the step (backward Euler)
    and continues from the solver's current time and device history, so
    calling run_dc() first starts from the operating point and calling
    run_transient() repeatedly continues the same run.

    Args:
        solver: Finalized solver
        duration: Simulated time to add (s)
        probes: Node ids to record (0 records ground)

    Returns:
        Waveform of the probed node voltages
    """
    n_steps = int(round(duration / solver.dt))
    probes = tuple(probes)

    times = []
    samples = []
    flags = []
    for _ in range(n_steps):
        converged = solver.step_transient(solver.time + solver.dt)
        times.append(solver.time)
        samples.append([solver.voltage(node) for node in probes])
        flags.append(converged)

    failed = n_steps - sum(flags)
    if failed:
        logger.warning(f"{failed} of {n_steps} transient steps did not converge")
    logger.debug(f"Transient run: {n_steps} steps of {solver.dt:.3g}s, t={solver.time:.6g}s")

    return Waveform(
        time=jnp.array(times, dtype=float),
        values=jnp.array(samples, dtype=float).reshape(n_steps, len(probes)),
        converged=jnp.array(flags, dtype=bool),
        probes=probes,
    )
