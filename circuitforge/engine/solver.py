"""
MNA solver: DC operating point and fixed-step transient analysis.

Unknown vector layout:
    x[0 : n_nodes]          node voltages, node id n at x[n - 1]
    x[n_nodes : n_unknowns] branch currents, in device insertion order

Every Newton-Raphson iteration rebuilds G and I from scratch by stamping
each device at the current candidate x, then solves G * x_next = I for
the full next iterate (device stamps are companion models, not
incremental corrections).
"""

from __future__ import annotations
from typing import NamedTuple
import logging

import jax
import jax.numpy as jnp
from jax import Array, lax

from .devices import Device
from .options import SolverOptions, check_dt

logger = logging.getLogger(__name__)


class SingularMatrixError(ArithmeticError):
    """The MNA matrix has no usable pivot (floating or conflicting topology)."""


class NoReferenceNodeError(SingularMatrixError):
    """No device is connected to ground, so node voltages are undefined."""


class Node(NamedTuple):
    """An electrical node (id 0 = ground reference)."""
    id: int
    name: str


class NewtonResult(NamedTuple):
    converged: bool
    iterations: int


@jax.jit
def _eliminate(A: Array, b: Array, pivot_tol: Array) -> tuple[Array, Array]:
    """
    Gauss-Jordan elimination with partial pivoting on [A | b].

    Returns (x, singular). The loop always runs to completion; once a
    pivot below pivot_tol is seen, singular is set and x is meaningless.
    """
    n = b.shape[0]
    M = jnp.concatenate([A, b[:, None]], axis=1)
    rows = jnp.arange(n)

    def body(k, carry):
        M, singular = carry
        # Largest magnitude in column k among rows k..n-1 (first one on ties)
        col = jnp.where(rows >= k, jnp.abs(M[:, k]), -1.0)
        p = jnp.argmax(col)
        singular = singular | ~(col[p] >= pivot_tol)

        row_k = M[k]
        M = M.at[k].set(M[p]).at[p].set(row_k)
        pivot_row = M[k] / M[k, k]
        M = M.at[k].set(pivot_row)

        factors = M[:, k].at[k].set(0.0)
        M = M - factors[:, None] * pivot_row[None, :]
        return M, singular

    M, singular = lax.fori_loop(0, n, body, (M, jnp.array(False)))
    return M[:, n], singular


def gaussian_solve(G: Array, I: Array, pivot_tol: float = 1e-15) -> Array:
    """
    Solve G x = I by dense Gaussian elimination with partial pivoting.

    Raises:
        SingularMatrixError: a pivot smaller than pivot_tol was selected
    """
    G = jnp.asarray(G, dtype=float)
    I = jnp.asarray(I, dtype=float)
    if I.shape[0] == 0:
        return I
    x, singular = _eliminate(G, I, jnp.asarray(pivot_tol, dtype=float))
    if bool(singular):
        raise SingularMatrixError(f"Matrix singular ({I.shape[0]} unknowns)")
    return x


class Solver:
    """
    Modified Nodal Analysis solver for one circuit.

    Build with add_node/add_device, call finalize() once, then run_dc()
    and/or step_transient() as often as needed. solution, time and the
    device history belong to this instance only.

    Example:
        solver = Solver()
        n1 = solver.add_node("N001")
        solver.add_device(DCVoltageSource(n1, 0, 5.0))
        solver.add_device(Resistor(n1, 0, 1e3))
        solver.finalize()
        result = solver.run_dc()
    """

    def __init__(self, options: SolverOptions | None = None):
        self.options = options if options is not None else SolverOptions()
        self.nodes: list[Node] = [Node(0, "GND")]
        self.devices: list[Device] = []
        self.num_unknowns = 0
        self.time = 0.0
        self._dt = self.options.dt
        self.solution: Array = jnp.zeros(0)
        self._finalized = False
        self._has_reference = False

    @property
    def dt(self) -> float:
        """Transient time step, bounded by options.dt_min/dt_max."""
        return self._dt

    @dt.setter
    def dt(self, value: float):
        self._dt = check_dt(float(value), self.options.dt_min, self.options.dt_max)

    @property
    def num_nodes(self) -> int:
        """Number of non-ground nodes."""
        return len(self.nodes) - 1

    @property
    def finalized(self) -> bool:
        return self._finalized

    def add_node(self, name: str) -> int:
        """Add a node and return its id."""
        if self._finalized:
            raise RuntimeError("Cannot add nodes after finalize()")
        node = Node(len(self.nodes), name)
        self.nodes.append(node)
        return node.id

    def add_device(self, device: Device) -> None:
        if self._finalized:
            raise RuntimeError("Cannot add devices after finalize()")
        self.devices.append(device)

    def device(self, name: str) -> Device:
        """Look up a device by name."""
        for device in self.devices:
            if device.name == name:
                return device
        raise KeyError(f"No device named {name!r}")

    def finalize(self) -> None:
        """Assign branch-current unknowns and allocate the solution vector."""
        if self._finalized:
            raise RuntimeError("finalize() already called; build a new Solver to change the circuit")

        n_nodes = self.num_nodes
        for device in self.devices:
            for node in device.get_node_indices():
                if not 0 <= node <= n_nodes:
                    raise ValueError(f"{device!r} references node {node}, valid ids are 0..{n_nodes}")

        next_index = n_nodes
        for device in self.devices:
            next_index = device.assign_extra(next_index)

        self.num_unknowns = next_index
        self.solution = jnp.zeros(self.num_unknowns)
        self._has_reference = any(0 in d.get_node_indices() for d in self.devices)
        self._finalized = True
        logger.debug(
            f"Finalized: {n_nodes} nodes, {len(self.devices)} devices, "
            f"{self.num_unknowns} unknowns"
        )

    def _check_ready(self) -> None:
        if not self._finalized:
            raise RuntimeError("Call finalize() before running an analysis")
        if self.devices and not self._has_reference:
            raise NoReferenceNodeError(
                "No reference node found: add a ground or tie a source terminal to ground"
            )

    def _build_system(self, mode: str, x: Array, time: float) -> tuple[Array, Array]:
        """Assemble G and I with every device linearized at x."""
        n = self.num_unknowns
        G = jnp.zeros((n, n))
        I = jnp.zeros(n)

        for device in self.devices:
            if mode == "dc":
                G, I = device.stamp_dc(G, I, x)
            else:
                G, I = device.stamp_transient(G, I, x, self.dt, time)

        if self.options.gmin > 0 and self.num_nodes > 0:
            diag = jnp.arange(self.num_nodes)
            G = G.at[diag, diag].add(self.options.gmin)
        return G, I

    def _solve_newton(self, mode: str, time: float = 0.0) -> NewtonResult:
        """
        Newton-Raphson starting from the current solution.

        The last candidate is stored as solution even without convergence.
        """
        x = self.solution
        max_iters = self.options.max_newton_iters

        for iteration in range(1, max_iters + 1):
            G, I = self._build_system(mode, x, time)
            residual = float(jnp.linalg.norm(G @ x - I))
            logger.debug(f"{mode} t={time:.6g} iter {iteration}: |r| = {residual:.3e}")

            if residual < self.options.v_tol:
                self.solution = x
                return NewtonResult(True, iteration)

            x = gaussian_solve(G, I, self.options.pivot_tol)

        self.solution = x
        logger.warning(
            f"Newton-Raphson did not converge in {max_iters} iterations "
            f"({mode}, t={time:.6g}, |r| = {residual:.3e})"
        )
        return NewtonResult(False, max_iters)

    def run_dc(self) -> NewtonResult:
        """
        Solve the DC operating point.

        On convergence every device snapshots its state, which becomes
        the initial condition of a following transient run.
        """
        self._check_ready()
        result = self._solve_newton("dc")
        if result.converged:
            for device in self.devices:
                device.update_state(self.solution, self.dt)
        return result

    def step_transient(self, time: float) -> bool:
        """
        Advance one backward-Euler step with sources evaluated at `time`.

        Device history is updated and self.time advances by dt whether or
        not Newton converged.

        Returns:
            True if Newton-Raphson converged
        """
        self._check_ready()
        result = self._solve_newton("tran", time)
        for device in self.devices:
            device.update_state(self.solution, self.dt)
        self.time += self.dt
        return result.converged

    def voltage(self, node_id: int) -> float:
        """Voltage of a node in the current solution."""
        if node_id == 0:
            return 0.0
        return float(self.solution[node_id - 1])

    def node_voltages(self) -> dict[str, float]:
        """Voltages of all nodes keyed by node name (ground included)."""
        return {node.name: self.voltage(node.id) for node in self.nodes}

    def branch_current(self, device: Device | str) -> float:
        """
        Branch current of a voltage source or inductor.

        Positive current flows from the first terminal through the device
        to the second terminal.
        """
        if isinstance(device, str):
            device = self.device(device)
        if device.branch_index is None:
            raise ValueError(f"{device!r} has no branch current")
        return float(self.solution[device.branch_index])
